"""kubicd - node join orchestration for kubeadm clusters managed through salt."""

__version__ = "0.1.0"
