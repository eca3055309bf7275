# src/noopdiscovery/cli/formatter.py
from typing import Iterable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from noopdiscovery.core.errors import ParseError
from noopdiscovery.core.models import ComponentChange, ManifestChange

console = Console()


def _short(path: str, root: str) -> str:
    return escape(path[len(root):] if path.startswith(root) else path)


class GraphFormatter:
    """
    GraphFormatter: renders a discovered Application.
    Responsible for the component, resource and route tables and for
    printing live change events.
    """

    def __init__(self, root: str, out: Console = console):
        self.root = root
        self.console = out

    def print_components(self, components: dict):
        table = Table(title="Components", show_header=True, header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Settings")
        table.add_column("Variables")
        table.add_column("Resources")
        table.add_column("Declaration", style="dim")

        for name in sorted(components):
            component = components[name]
            settings = escape(", ".join(f"{k}={v}" for k, v in component.settings.items()))
            variables = escape(", ".join(
                f"{k}{' (secret)' if v['secret'] else ''}" for k, v in component.variables.items()
            ))
            table.add_row(
                escape(component.name),
                component.type.value,
                settings,
                variables,
                escape(", ".join(r.name for r in component.resources)),
                _short(component.declaration, self.root),
            )
        self.console.print(table)

    def print_resources(self, resources: dict):
        table = Table(title="Resources", show_header=True, header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Settings")
        table.add_column("Used by")

        for name in sorted(resources):
            resource = resources[name]
            table.add_row(
                escape(resource.name),
                escape(str(resource.type)),
                escape(", ".join(f"{k}={v}" for k, v in resource.settings.items())),
                escape(", ".join(resource.consumers)),
            )
        self.console.print(table)

    def print_routes(self, routes: Iterable):
        table = Table(title="Routes", show_header=True, header_style="bold magenta")
        table.add_column("Method")
        table.add_column("Pattern", style="cyan")
        table.add_column("Visibility")
        table.add_column("Component")

        for route in routes:
            visibility = route.visibility
            if route.condition:
                visibility += f" if {route.condition}"
            table.add_row(escape(route.method), escape(route.pattern), escape(visibility), escape(route.component))
        self.console.print(table)

    def print_warnings(self, warnings: Iterable[ParseError]):
        for warning in warnings:
            self.console.print(f"[bold yellow]⚠  {escape(warning.message)}[/bold yellow] [dim]{_short(warning.location or '', self.root)}[/dim]")

    def print_event(self, event):
        if isinstance(event, ManifestChange):
            self.console.print(f"[bold yellow]manifest[/bold yellow]  {_short(event.path, self.root)}")
        elif isinstance(event, ComponentChange):
            self.console.print(f"[bold cyan]{escape(event.component)}[/bold cyan]  {_short(event.path, self.root)}")

    def print_error(self, error: Exception):
        self.console.print(Panel(
            f"[bold red]{type(error).__name__}[/bold red]\n{escape(str(error))}",
            title="Discovery failed",
            border_style="red",
            expand=False,
        ))
