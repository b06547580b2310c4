import typer

from kubicd.config import get_settings
from kubicd.modules.join import NodeRequest, NodeRole, StatusEvent, build_orchestrator

app = typer.Typer(help="Manage cluster nodes.")


def print_event(event: StatusEvent) -> None:
    if event.succeeded:
        typer.echo(event.message)
    else:
        typer.secho(f"❌ {event.message}", fg=typer.colors.RED)


@app.command("add")
def add_node(
    names: str = typer.Argument(..., help="Node names: 'a,b,c' or a pattern like 'node[1,2]'"),
    type: str = typer.Option("worker", "--type", "-t", help="Node role: worker or master"),
):
    """Join nodes to the cluster."""
    try:
        role = NodeRole.parse(type)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--type")

    orchestrator = build_orchestrator(get_settings())
    result = orchestrator.add_nodes(NodeRequest(names=names, role=role), print_event)

    if not result.succeeded:
        raise typer.Exit(code=1)
    typer.echo(f"✅ {result.attempted} node(s) added")
