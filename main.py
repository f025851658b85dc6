#!/usr/bin/env python3
"""
Express API Documentation Synthesizer v1.0
==========================================
Static OpenAPI 3.0 generation for folder-routed Express backends.

Reads controllers/ and routes/{public,private}/<Feature>/ at rest (no
JavaScript is executed) and writes one swagger.json with:
  - Per-feature component schemas and tags
  - One operation per router.<verb>() registration
  - Scoped enum annotations (@enum, @paramEnum, @queryEnum, @routeEnum,
    @endpointEnum) and inline validation arrays
  - Atomic artifact replacement

Usage: python main.py [OPTIONS] [project | git-url]
"""

import sys
import os
import argparse
import tempfile
import shutil
import logging
from typing import Any, Dict, List, Optional

# =============================================================================
# VERSION
# =============================================================================
__version__ = "1.0.0"

# =============================================================================
# DEPENDENCY CHECK
# =============================================================================
REQUIRED = {"rich": "rich>=13.7.0", "git": "gitpython>=3.1.40", "dotenv": "python-dotenv>=1.0.0"}

def check_deps():
    missing = []
    for mod, pkg in REQUIRED.items():
        try:
            __import__(mod)
        except ImportError:
            missing.append(pkg)
    if missing:
        print(f"\nMissing: pip install {' '.join(missing)}\n")
        sys.exit(1)

check_deps()

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box
from dotenv import load_dotenv
import git

from docgen import GeneratorConfig, SwaggerGenerationError, generate_swagger

load_dotenv()
console = Console()

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configure structured logging for the synthesizer."""
    logger = logging.getLogger("apidoc_synth")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    # Console handler with structured format
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)  # Only warnings and errors to console
    console_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            datefmt='%Y-%m-%dT%H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger

logger = setup_logging()

# =============================================================================
# OUTPUT
# =============================================================================
VERB_COLORS = {"GET": "green", "POST": "yellow", "PUT": "blue", "PATCH": "cyan", "DELETE": "red"}

def fmt_verb(verb: str) -> str:
    color = VERB_COLORS.get(verb, "white")
    return f"[{color}]{verb}[/{color}]"

def operation_rows(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    rows = []
    for path, operations in document.get("paths", {}).items():
        for method, op in operations.items():
            rows.append({
                "method": method.upper(),
                "path": path,
                "tag": (op.get("tags") or [""])[0],
                "handler": op.get("x-handler", ""),
                "secured": bool(op.get("security")),
            })
    return rows

def make_table(document: Dict[str, Any]) -> Table:
    t = Table(title=" Documented Operations", box=box.ROUNDED, header_style="bold magenta")
    t.add_column("#", style="dim", width=4)
    t.add_column("Method", width=8)
    t.add_column("Path", max_width=50)
    t.add_column("Tag", style="cyan", width=16)
    t.add_column("Handler", style="dim", max_width=36)
    t.add_column("Auth", width=8)

    rows = operation_rows(document)
    for i, row in enumerate(rows[:100], 1):
        path = row["path"][:47] + "..." if len(row["path"]) > 50 else row["path"]
        auth = "[green]bearer[/green]" if row["secured"] else "[yellow]public[/yellow]"
        t.add_row(str(i), fmt_verb(row["method"]), path, row["tag"], row["handler"] or "-", auth)

    if len(rows) > 100:
        t.add_row("...", "...", f"... +{len(rows) - 100} more", "", "", "")

    return t

def make_summary(document: Dict[str, Any], config: GeneratorConfig) -> Panel:
    rows = operation_rows(document)
    by_method: Dict[str, int] = {}
    for row in rows:
        by_method[row["method"]] = by_method.get(row["method"], 0) + 1
    unresolved = sum(1 for row in rows if not row["handler"])

    txt = f"""
[bold cyan] Generation Summary[/bold cyan]

[bold]Paths:[/bold] {len(document.get('paths', {}))}
[bold]Operations:[/bold] {len(rows)} | Secured: {sum(1 for r in rows if r['secured'])}
[bold]Schemas:[/bold] {len(document.get('components', {}).get('schemas', {}))}
[bold]Tags:[/bold] {len(document.get('tags', []))}
[bold]Inline handlers:[/bold] {unresolved}

[bold cyan]By Method:[/bold cyan]
""" + "\n".join([f"   {m}: {c}" for m, c in sorted(by_method.items(), key=lambda x: -x[1])])

    txt += f"""

[bold]Output:[/bold] {config.output_path}"""

    return Panel(txt, title=" Swagger Results", border_style="cyan")

# =============================================================================
# GIT HELPER
# =============================================================================
def is_git_url(target: str) -> bool:
    return target.startswith(("http://", "https://", "git@"))

def clone_repo(url: str) -> str:
    tmp = tempfile.mkdtemp(prefix="apidoc_synth_")
    console.print(f"[cyan]Cloning: {url}[/cyan]")
    git.Repo.clone_from(url, tmp, depth=1)
    console.print(f"[green] Cloned[/green]")
    return tmp

# =============================================================================
# MAIN CLI
# =============================================================================
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"Express API Documentation Synthesizer v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                   # Document the current project
  python main.py ./backend -o docs/swagger.json    # Custom output file
  python main.py ./backend --port 8080             # Server URL http://localhost:8080
  python main.py https://github.com/org/api.git    # Shallow-clone and document
  python main.py ./backend --config swagger.yaml   # Settings from JSON/YAML
  PORT=5000 SWAGGER_TITLE="School API" python main.py ./backend
        """
    )

    # Target
    parser.add_argument("target", nargs="?", default=None,
                        help="Project directory or Git URL (default: current directory)")

    # Source layout
    source_group = parser.add_argument_group("Source Layout")
    source_group.add_argument("--controllers", metavar="DIR",
                              help="Controllers directory, relative to the project (default: controllers)")
    source_group.add_argument("--routes", metavar="DIR",
                              help="Routes directory, relative to the project (default: routes)")

    # Output options
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument("-o", "--output", metavar="FILE",
                              help="Output file (default: public/swagger.json)")
    output_group.add_argument("--port", type=int,
                              help="Port of the development server URL (default: $PORT or 3000)")
    output_group.add_argument("--title", help="Document title")
    output_group.add_argument("--api-version", metavar="VERSION", help="Document version (default: 1.0.0)")
    output_group.add_argument("--config", metavar="FILE",
                              help="Configuration file (JSON/YAML)")

    # Logging
    log_group = parser.add_argument_group("Logging")
    log_group.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                           help="Log level (default: INFO)")
    log_group.add_argument("--log-file", metavar="FILE",
                           help="Write JSON-line debug log to file")

    # General
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")

    return parser


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)

    # Banner
    if not args.quiet:
        console.print(Panel.fit(
            f"[bold cyan] Express API Documentation Synthesizer v{__version__}[/bold cyan]\n"
            "[dim]controllers/ + routes/ -> OpenAPI 3.0[/dim]",
            border_style="cyan"
        ))

    tmp = None

    try:
        # Build configuration
        if args.config:
            config = GeneratorConfig.from_file(args.config)
        else:
            config = GeneratorConfig.from_env()

        setup_logging(args.log_level or config.log_level, args.log_file)

        target = args.target
        output = args.output

        # Clone if URL
        if target and is_git_url(target):
            tmp = clone_repo(target)
            target = tmp
            # Keep the artifact outside the throwaway clone
            output = os.path.abspath(output or os.path.basename(config.output_file))
        elif target and not os.path.isdir(target):
            console.print(f"[red]Error: {target} not found[/red]")
            sys.exit(1)

        # Override with CLI args
        config.override(
            project_root=target,
            controllers_dir=args.controllers,
            routes_dir=args.routes,
            output_file=output,
            port=args.port,
            title=args.title,
            version=args.api_version,
            log_level=args.log_level,
        )
        logger.debug(f"Configuration: {config.to_dict()}")

        if not args.quiet:
            console.print(f"\n[bold cyan] Analyzing...[/bold cyan] [dim]{config.resolve('.')}[/dim]")

        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      console=console, disable=args.quiet) as prog:
            prog.add_task("[cyan]Scanning controllers and routes", total=None)
            document = generate_swagger(config)

        # Print results
        if not args.quiet:
            console.print("\n" + "=" * 70)
            console.print(make_summary(document, config))
            console.print()
            if document.get("paths"):
                console.print(make_table(document))

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except SwaggerGenerationError as e:
        console.print(f"\n[red] Failed to generate documentation: {e}[/red]")
        if args.verbose:
            console.print_exception()
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[red]Error: {e}[/red]")
        if args.verbose:
            console.print_exception()
        sys.exit(1)
    finally:
        if tmp and os.path.exists(tmp):
            shutil.rmtree(tmp, ignore_errors=True)

    if not args.quiet:
        console.print(f"\n[bold green] Swagger documentation generated: {config.output_path}[/bold green]")

    sys.exit(0)

if __name__ == "__main__":
    main()
