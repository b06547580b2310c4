from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from kubicd.api.dependencies import get_issuer
from kubicd.errors import CertificateError
from kubicd.modules.certificate import CertificateIssuer

router = APIRouter()


class CreateCertRequest(BaseModel):
    name: str = Field(..., min_length=1)


@router.post("/certificates")
def create_cert(req: CreateCertRequest, issuer: CertificateIssuer = Depends(get_issuer)):
    try:
        cert = issuer.create(req.name)
    except CertificateError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"name": cert.name, "key": cert.key, "crt": cert.crt}
