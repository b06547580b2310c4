from fastapi import Request

from kubicd.modules.certificate import CertificateIssuer
from kubicd.modules.join import JoinOrchestrator


def get_orchestrator(request: Request) -> JoinOrchestrator:
    return request.app.state.orchestrator


def get_issuer(request: Request) -> CertificateIssuer:
    pki = request.app.state.settings.pki
    return CertificateIssuer(pki.dir, ca_name=pki.ca_name, certstrap=pki.certstrap)
