"""
toolpin — CLI entrypoint.

Usage:
    python -m toolpin.main --help
    toolpin run pnpm install
    toolpin run yarn@4.1.0 --version
    toolpin resolve pnpm@^8
    toolpin cache clean
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from toolpin import __version__
from toolpin.core.config.settings import Settings
from toolpin.core.errors import ToolpinError
from toolpin.core.observability.logging_config import resolve_level, setup_logging


def build_engine(settings: Settings):
    """Wire the Engine to the real registry, install folder, runner and package.json."""
    from toolpin.adapters.install.folder import InstallFolder
    from toolpin.adapters.project.package_json import PackageJsonSpecSource
    from toolpin.adapters.registry.npm import HttpRegistryClient
    from toolpin.adapters.shell.runner import SubprocessRunner
    from toolpin.core.config.loader import load_definitions
    from toolpin.core.engine import Engine

    return Engine(
        definitions=load_definitions(settings.definitions_path),
        settings=settings,
        registry=HttpRegistryClient(npm_registry=settings.npm_registry),
        installer=InstallFolder(),
        runner=SubprocessRunner(),
        project_specs=PackageJsonSpecSource(
            allow_unsafe_custom_urls=settings.allow_unsafe_custom_urls,
        ),
    )


def _engine(ctx: click.Context):
    if "engine" not in ctx.obj:
        ctx.obj["engine"] = build_engine(ctx.obj["settings"])
    return ctx.obj["engine"]


def _fail(error: Exception) -> None:
    click.secho(f"❌ {error}", fg="red", err=True)
    sys.exit(1)


def _split_at(value: str) -> tuple[str, str | None]:
    """``pnpm@8.6.0`` → (``pnpm``, ``8.6.0``); a leading ``@`` is part of the name."""
    at = value.find("@", 1)
    if at == -1:
        return value, None
    return value[:at], value[at + 1:] or None


@click.group()
@click.version_option(version=__version__, prog_name="toolpin")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, debug: bool) -> None:
    """toolpin — run the package manager version your project pins."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", Settings.from_env())

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("TOOLPIN_LOG_FILE"),
        log_file_level=os.environ.get("TOOLPIN_LOG_FILE_LEVEL"),
    )


@cli.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.argument("binary")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx: click.Context, binary: str, args: tuple[str, ...]) -> None:
    """Run BINARY (optionally BINARY@VERSION) with ARGS."""
    from toolpin.core.models.descriptor import PackageManagerRequest, is_url

    binary_name, binary_version = _split_at(binary)

    try:
        engine = _engine(ctx)
        package_manager = engine.package_manager_for(binary_name)
        if package_manager is None and not is_url(binary_version):
            raise ToolpinError(f"Unsupported binary: {binary_name}")

        request = PackageManagerRequest(
            package_manager=package_manager,
            binary_name=binary_name,
            binary_version=binary_version,
        )
        code = engine.execute_request(request, cwd=Path.cwd(), args=list(args))
    except ToolpinError as e:
        _fail(e)
        return

    sys.exit(code)


@cli.command()
@click.argument("spec")
@click.option("--no-cache", is_flag=True, help="Ignore versions already installed.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def resolve(ctx: click.Context, spec: str, no_cache: bool, as_json: bool) -> None:
    """Resolve SPEC (name@range or name@tag) to an exact version."""
    from toolpin.core.engine.project_spec import resolution_failed
    from toolpin.core.models.descriptor import Descriptor

    name, range_ = _split_at(spec)

    try:
        engine = _engine(ctx)
        descriptor = Descriptor(name=name, range=range_ or engine.default_version(name))
        locator = engine.resolve_descriptor(descriptor, allow_tags=True, use_cache=not no_cache)
        if locator is None:
            raise resolution_failed(descriptor)
    except ToolpinError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(locator.model_dump(), indent=2))
        return
    click.echo(str(locator))


@cli.command()
@click.argument("spec")
@click.pass_context
def activate(ctx: click.Context, spec: str) -> None:
    """Install SPEC and make it this machine's default version."""
    from toolpin.core.engine.project_spec import resolution_failed
    from toolpin.core.models.descriptor import Descriptor

    name, range_ = _split_at(spec)

    try:
        engine = _engine(ctx)
        descriptor = Descriptor(name=name, range=range_ or "latest")
        locator = engine.resolve_descriptor(descriptor, allow_tags=True)
        if locator is None:
            raise resolution_failed(descriptor)
        prepared = engine.ensure_package_manager(locator)
        engine.activate_package_manager(prepared.locator)
    except ToolpinError as e:
        _fail(e)
        return

    click.secho(f"✅ {prepared.locator.name}@{prepared.locator.reference.split('+', 1)[0]} is now the default", fg="green")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def defaults(ctx: click.Context, as_json: bool) -> None:
    """Show the default version of every supported package manager."""
    try:
        descriptors = _engine(ctx).default_descriptors()
    except ToolpinError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps([d.model_dump() for d in descriptors], indent=2))
        return
    for descriptor in descriptors:
        click.echo(str(descriptor))


@cli.group()
def cache() -> None:
    """Install cache commands."""


@cache.command("clean")
@click.pass_context
def cache_clean(ctx: click.Context) -> None:
    """Remove every downloaded package manager version."""
    from toolpin.adapters.install.folder import InstallFolder

    InstallFolder().clean(ctx.obj["settings"].install_root)
    click.echo("Install cache removed.")


cache.add_command(cache_clean, name="clear")


if __name__ == "__main__":
    cli()
