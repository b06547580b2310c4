from pathlib import Path

import typer

from kubicd.config import get_settings
from kubicd.errors import CertificateError
from kubicd.modules.certificate import CertificateIssuer

app = typer.Typer(help="Issue user certificates.")


@app.command("create")
def create_cert(
    name: str = typer.Argument(..., help="Common name of the user"),
    output_dir: Path = typer.Option(Path("."), "--output", "-o", help="Directory for <name>.key and <name>.crt"),
):
    """Create and sign a certificate for a user."""
    pki = get_settings().pki
    issuer = CertificateIssuer(pki.dir, ca_name=pki.ca_name, certstrap=pki.certstrap)
    try:
        cert = issuer.create(name)
    except CertificateError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    output_dir.mkdir(parents=True, exist_ok=True)
    key_path = output_dir / f"{name}.key"
    key_path.write_text(cert.key)
    key_path.chmod(0o600)
    (output_dir / f"{name}.crt").write_text(cert.crt)
    typer.echo(f"✅ Wrote {key_path} and {output_dir / f'{name}.crt'}")
