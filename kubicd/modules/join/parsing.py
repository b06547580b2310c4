"""Parsers for the text output of remote commands.

The salt and kubeadm output formats are positional, so every parser here is
kept small and free of side effects to be testable on its own.
"""
from typing import List

TRUTHY = 'True'
CERT_KEY_LINE = 2


def parse_join_command(output: str, strip_minion_prefix: bool = True) -> str:
    """Extract the join command from ``kubeadm token create --print-join-command``.

    When the command ran through salt, the output is prefixed with the minion
    name followed by a colon; everything up to the first colon is dropped.

    Raises:
        ValueError: If no join command is left after cleaning the output
    """
    token = output
    if strip_minion_prefix:
        token = token.replace('\n', '')
        token = token[token.find(':') + 1:]
    token = token.strip()
    if not token:
        raise ValueError("empty join command in token output")
    return token


def parse_certificate_key(output: str) -> str:
    """Extract the certificate key from ``kubeadm init phase upload-certs`` output.

    Colons are removed and the output split into lines; the key is on line
    index 2.

    Raises:
        ValueError: If the output is too short or the key line is empty
    """
    lines = output.replace(':', '').split('\n')
    if len(lines) <= CERT_KEY_LINE:
        raise ValueError(
            f"upload-certs output has {len(lines)} line(s), expected the key on line {CERT_KEY_LINE}"
        )
    key = lines[CERT_KEY_LINE].strip()
    if not key:
        raise ValueError("certificate key line is empty")
    return key


def parse_ping_response(output: str) -> List[str]:
    """Return the minions that answered ``test.ping`` with ``True``.

    Each line is ``<name>: <value>``. Lines with any other value, or lines
    that cannot be split, are skipped.
    """
    responsive = []
    for line in output.splitlines():
        name, sep, value = line.partition(':')
        if not sep:
            continue
        name = name.strip()
        if name and value.strip() == TRUTHY and name not in responsive:
            responsive.append(name)
    return responsive


def is_list_target(names: str) -> bool:
    """Tell an explicit ``a,b,c`` list apart from a ``name[1,2]`` pattern."""
    return ',' in names and '[' not in names
