#!/usr/bin/env python3
"""
NOOPDISCOVERY CLI
-----------------
Command-line interface over the discovery engine.

    noop-discovery scan <root>     discover once and print the graph
    noop-discovery watch <root>    discover, then stream change attribution

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from noopdiscovery.core.application import Application
from noopdiscovery.core.config import IGNORE_FILENAMES, MANIFEST_FILENAME, DiscoveryConfig
from noopdiscovery.core.errors import DiscoveryError
from noopdiscovery.core.models import ManifestChange
from noopdiscovery.cli.formatter import GraphFormatter

VERSION = "0.1.0"

console = Console()


class NoopDiscoveryCLI:
    """Translates user commands into Application actions."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="noop-discovery",
            description="Discover the components, resources and routes of a Noopfile application",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("-v", "--version", action="version", version=f"noop-discovery v{VERSION}")
        self.parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
        self.parser.add_argument("--manifest-name", default=MANIFEST_FILENAME,
                                 help=f"Manifest file name (default: {MANIFEST_FILENAME})")
        self.parser.add_argument("--ignore-name", action="append", dest="ignore_names",
                                 help="Ignore file name, repeatable (default: .gitignore)")
        self.parser.add_argument("--workers", type=int, default=None, help="Worker threads per pipeline stage")

        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        scan_parser = subparsers.add_parser("scan", help="Discover and print the application graph")
        scan_parser.add_argument("path", help="Application root directory")

        watch_parser = subparsers.add_parser("watch", help="Discover, then attribute live file changes")
        watch_parser.add_argument("path", help="Application root directory")

    def _configure_logging(self, verbose: bool):
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    def _build_config(self, args: argparse.Namespace) -> DiscoveryConfig:
        overrides = {
            "manifest_filename": args.manifest_name,
            "ignore_filenames": tuple(args.ignore_names) if args.ignore_names else IGNORE_FILENAMES,
        }
        if args.workers:
            overrides["max_workers"] = args.workers
        return DiscoveryConfig(**overrides)

    def print_header(self, subtitle: str):
        console.print(Panel.fit(
            f"[bold cyan]noop-discovery v{VERSION}[/bold cyan]",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan",
        ))

    def _scan(self, args: argparse.Namespace) -> int:
        app = Application(args.path, watch=False, config=self._build_config(args))
        formatter = GraphFormatter(app.root_path, console)
        try:
            app.discover()
        except (DiscoveryError, OSError) as e:
            formatter.print_error(e)
            return 1

        formatter.print_warnings(app.warnings)
        formatter.print_components(app.components)
        formatter.print_resources(app.resources)
        formatter.print_routes(app.routes)
        return 0

    def _watch(self, args: argparse.Namespace) -> int:
        app = Application(args.path, watch=True, config=self._build_config(args))
        formatter = GraphFormatter(app.root_path, console)
        try:
            app.discover()
        except (DiscoveryError, OSError) as e:
            formatter.print_error(e)
            return 1

        formatter.print_components(app.components)
        console.print("[dim]Watching for changes, press Ctrl+C to stop.[/dim]")
        try:
            while True:
                for event in app.events():
                    formatter.print_event(event)
                    if isinstance(event, ManifestChange):
                        break
                else:
                    return 0
                # Topology changed: rebuild everything from scratch
                try:
                    app.reload()
                    formatter.print_components(app.components)
                except (DiscoveryError, OSError) as e:
                    formatter.print_error(e)
                    return 1
        finally:
            app.close()

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(argv)
        if not args.command:
            self.parser.print_help()
            return 0

        self._configure_logging(args.verbose)
        if args.command == "scan":
            self.print_header("Application Scan")
            return self._scan(args)
        if args.command == "watch":
            self.print_header("Change Attribution")
            return self._watch(args)
        self.parser.print_help()
        return 2


def main():
    try:
        sys.exit(NoopDiscoveryCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
