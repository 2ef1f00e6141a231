"""Demo walking through bastion's compile→check→swap workflow.

Loads the bundled catalogs, compiles the built-in service account roles and a
custom role, and prints authorization decisions for a handful of requests.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bastion.auth.reserved_roles import ReservedRolesStore
from bastion.auth.service_accounts import ServiceAccountRegistry
from bastion.config import Config
from bastion.core.cache import LiveRole, RoleCache, RoleCompiler
from bastion.models.application import ApplicationPrivilegeDescriptor
from bastion.models.authentication import Authentication
from bastion.models.descriptor import (
    ApplicationResourcePrivileges,
    FieldSecurity,
    IndicesPrivileges,
    RoleDescriptor,
)
from bastion.models.requests import CreateApiKeyRequest, GetApiKeyRequest, TransportRequest

console = Console()


def step_header(num: int, title: str) -> None:
    """Display a step header."""
    console.print()
    console.print(
        Panel(
            f"[bold cyan]Step {num}:[/bold cyan] [yellow]{title}[/yellow]",
            border_style="cyan",
        )
    )


def verdict(allowed: bool) -> str:
    return "[green]allow[/green]" if allowed else "[red]deny[/red]"


def demo() -> None:
    """Run the demo."""
    config = Config()
    config.configure_logging()

    step_header(1, "Loading catalogs")
    compiler = RoleCompiler.from_config(config)
    reserved = ReservedRolesStore.load(config.reserved_roles_file)
    registry = ServiceAccountRegistry.load(config, reserved)
    console.print(f"[green]✓[/green] Cluster privileges: {len(compiler.catalog.cluster.names())}")
    console.print(f"[green]✓[/green] Index privileges: {len(compiler.catalog.index.names())}")
    console.print(f"[green]✓[/green] Reserved roles: {', '.join(sorted(reserved.names()))}")
    console.print(f"[green]✓[/green] Service accounts: {', '.join(registry.principals())}")

    step_header(2, "Checking the fleet-server account")
    principal = "bastion/fleet-server"
    auth = Authentication.for_service_account(principal)
    role = registry.role(principal, compiler)

    table = Table(title=principal)
    table.add_column("Action", style="cyan")
    table.add_column("Index", style="yellow")
    table.add_column("Decision")
    for action, index in [
        ("indices:data/write/bulk", "logs-nginx.access-default"),
        ("indices:data/read/search", "logs-nginx.access-default"),
        ("indices:data/read/search", ".fleet-secrets"),
        ("indices:data/write/index", ".fleet-secrets"),
        ("indices:data/write/index", ".fleet-agents"),
        ("indices:admin/delete", ".fleet-agents"),
    ]:
        table.add_row(action, index, verdict(role.indices.allows(action, index)))
    console.print(table)

    cluster = Table(title="Cluster")
    cluster.add_column("Action", style="cyan")
    cluster.add_column("Request", style="yellow")
    cluster.add_column("Decision")
    for action, request in [
        ("cluster:monitor/health", TransportRequest()),
        ("cluster:admin/xpack/security/api_key/create", CreateApiKeyRequest(name="agent")),
        ("cluster:admin/xpack/security/api_key/get", GetApiKeyRequest.for_owned_api_keys()),
        ("cluster:admin/xpack/security/api_key/get", GetApiKeyRequest()),
    ]:
        cluster.add_row(
            action, type(request).__name__, verdict(role.cluster.check(action, request, auth))
        )
    console.print(cluster)

    step_header(3, "Compiling a custom role")
    analyst = RoleDescriptor(
        name="analyst",
        cluster=["monitor"],
        indices=[
            IndicesPrivileges(
                names=["logs-*", "-logs-audit*"],
                privileges=["read"],
                field_security=FieldSecurity(grant=["@timestamp", "message", "host.*"]),
                query='{"term": {"team": "analytics"}}',
            )
        ],
        applications=[
            ApplicationResourcePrivileges(
                application="kibana-*", privileges=["feature/discover/*"], resources=["*"]
            )
        ],
    )
    cache = RoleCache.from_config(config)
    role = cache.get([analyst])
    for index, control in role.indices.authorize(
        "indices:data/read/search", ["logs-web", "logs-audit", "metrics-web"]
    ).items():
        if not control.granted:
            console.print(f"[red]✗[/red] {index}")
            continue
        console.print(
            f"[green]✓[/green] {index}: message={control.field_allowed('message')} "
            f"user.name={control.field_allowed('user.name')} "
            f"queries={sorted(control.queries or [])}"
        )
    discover = ApplicationPrivilegeDescriptor.create(
        "kibana-.kibana", "read", "feature/discover/read"
    )
    allowed = role.application.grants(discover, "space:default")
    console.print(f"Kibana discover: {verdict(allowed)}")

    step_header(4, "Publishing a new role snapshot")
    live = LiveRole(role)
    metrics = IndicesPrivileges(names=["metrics-*"], privileges=["read"])
    widened = analyst.model_copy(update={"indices": analyst.indices + (metrics,)})
    previous = live.publish(cache.get([widened]))
    for label, snapshot in (("before", previous), ("after", live.current)):
        allowed = snapshot.indices.allows("indices:data/read/search", "metrics-web")
        console.print(f"metrics-web {label}: {verdict(allowed)}")
    console.print(f"[dim]Generation {live.generation}, {len(cache)} cached roles[/dim]")

    console.print("\n[bold green]✓ Demo complete![/bold green]\n")


if __name__ == "__main__":
    demo()
