"""
Helix — CLI entrypoint.

Usage:
    helix --help
    helix parse app.helix
    helix generate app.helix --target web --out ./my-app
    helix spawn "a task tracker with priorities"
    helix config check
"""

from __future__ import annotations

import asyncio
import json
import os
import signal
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

import click

from helix import __version__
from helix.core.config.loader import ConfigError, HelixConfig, api_key, load_config
from helix.core.observability.logging_config import (
    ENV_LOG_FILE,
    ENV_LOG_FILE_LEVEL,
    ENV_LOG_LEVEL,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="helix")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to helix.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Helix — compile blueprints into full-stack apps."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(
            debug=debug,
            verbose=verbose,
            quiet=quiet,
            env_level=os.environ.get(ENV_LOG_LEVEL),
        ),
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
        quiet_third_party=not debug,
    )


# ── Shared helpers ──────────────────────────────────────────────


def _config(ctx: click.Context) -> HelixConfig:
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = load_config(ctx.obj.get("config_path"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red")
            sys.exit(1)
    return ctx.obj["config"]


def _registry(ctx: click.Context):
    from helix.plugins.registry import PluginRegistry

    if "registry" not in ctx.obj:
        ctx.obj["registry"] = PluginRegistry(prefix=_config(ctx).plugin_prefix)
    return ctx.obj["registry"]


def _executor(config: HelixConfig):
    from helix.core.reliability.self_healing import SelfHealingExecutor

    return SelfHealingExecutor(
        max_repair_attempts=config.max_repair_attempts,
        attempt_timeout=config.attempt_timeout,
    )


def _make_client(config: HelixConfig):
    """Completion client from the environment's API key (exits if unset)."""
    from helix.adapters.openrouter import OpenRouterClient

    key = api_key()
    if not key:
        click.secho("❌ OPENROUTER_API_KEY is not set", fg="red")
        click.echo("   Get a key at https://openrouter.ai and export it.")
        sys.exit(1)
    return OpenRouterClient(key, model=config.model)


def _parse_options(pairs: tuple[str, ...]) -> dict[str, str]:
    options: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got '{pair}'", param_hint="--option")
        options[key.strip()] = value.strip()
    return options


def _read_context(path: str | None) -> str | None:
    return Path(path).read_text(encoding="utf-8") if path else None


def _run_cancellable(make: Callable[[asyncio.Event], Awaitable[Any]]) -> Any:
    """Run a coroutine with Ctrl-C wired to a cancel event."""

    async def main() -> Any:
        cancel = asyncio.Event()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, cancel.set)
        except (NotImplementedError, RuntimeError):
            pass  # no loop signal handlers on this platform/thread
        return await make(cancel)

    return asyncio.run(main())


def _print_repair_log(entries: list[str] | tuple[str, ...]) -> None:
    if not entries:
        return
    click.secho("   Repair log:", fg="yellow")
    for entry in entries:
        click.echo(f"     • {entry}")


# ── parse ───────────────────────────────────────────────────────


@cli.command()
@click.argument("blueprint", type=click.Path(exists=True, dir_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def parse(blueprint: str, as_json: bool) -> None:
    """Parse a blueprint and show its strands and views."""
    from helix.core.errors import ParseError
    from helix.core.parser import parse as parse_blueprint

    try:
        bp = parse_blueprint(Path(blueprint).read_text(encoding="utf-8"))
    except ParseError as e:
        if as_json:
            click.echo(json.dumps({
                "ok": False,
                "error": e.message,
                "line": e.line,
                "column": e.column,
                "offset": e.offset,
            }, indent=2))
        else:
            click.secho(f"❌ {blueprint}: {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({"ok": True, **bp.summary()}, indent=2))
        return

    click.secho(f"\n🧬 {blueprint}", fg="cyan", bold=True)
    click.secho(f"   Strands: {len(bp.strands)}", fg="white", bold=True)
    for strand in bp.strands:
        fields = ", ".join(f"{f.name}: {f.type.value}" for f in strand.fields)
        click.echo(f"     • {strand.name} ({fields})")
    click.secho(f"   Views: {len(bp.views)}", fg="white", bold=True)
    for view in bp.views:
        bound = f" → {view.list_strand}" if view.list_strand else " (static)"
        click.echo(f"     • {view.name}{bound}")
    click.echo()


# ── generate ────────────────────────────────────────────────────


@cli.command()
@click.argument("blueprint", type=click.Path(dir_okay=False))
@click.option("--target", "-t", default=None, help="Generator target (default: from config).")
@click.option("--out", "-o", "out_dir", type=click.Path(file_okay=False), default=None,
              help="Write files here (default: print the file list only).")
@click.option("--option", "-O", "option_pairs", multiple=True, help="Target option key=value.")
@click.option("--context", "context_path", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Constitution/context file.")
@click.option("--overwrite", is_flag=True, help="Overwrite existing files.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def generate(
    ctx: click.Context,
    blueprint: str,
    target: str | None,
    out_dir: str | None,
    option_pairs: tuple[str, ...],
    context_path: str | None,
    overwrite: bool,
    as_json: bool,
) -> None:
    """Compile a blueprint for a target platform."""
    from helix.core.use_cases.generate import run_generate

    config = _config(ctx)
    result = run_generate(
        Path(blueprint),
        target or config.default_target,
        _registry(ctx),
        _read_context(context_path),
        _parse_options(option_pairs),
        output_dir=Path(out_dir) if out_dir else None,
        overwrite=overwrite,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.manifest is not None  # guaranteed after error check above
    click.secho(f"⚡ {result.target}: {len(result.manifest.files)} file(s)", fg="cyan", bold=True)
    if result.write is None:
        for path in result.manifest.paths:
            click.echo(f"     • {path}")
    else:
        for path in result.write.written:
            click.secho(f"     ✓ {path}", fg="green")
        for path in result.write.skipped:
            click.secho(f"     ⏭ {path} (exists)", fg="yellow")
        for path, err in result.write.errors.items():
            click.secho(f"     ✗ {path}: {err}", fg="red")
        if not result.write.ok:
            sys.exit(1)
    click.echo()


# ── draft ───────────────────────────────────────────────────────


@cli.command()
@click.argument("idea")
@click.option("--context", "context_path", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Constitution/context file.")
@click.option("--out", "-o", "out_file", type=click.Path(dir_okay=False), default=None,
              help="Write the blueprint to this file.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def draft(
    ctx: click.Context,
    idea: str,
    context_path: str | None,
    out_file: str | None,
    as_json: bool,
) -> None:
    """Draft a blueprint from a natural-language idea."""
    from helix.core.services.drafting import draft_blueprint

    config = _config(ctx)
    client = _make_client(config)
    executor = _executor(config)
    context = _read_context(context_path)

    result = _run_cancellable(
        lambda cancel: draft_blueprint(
            idea, client, executor, context, max_tokens=config.max_tokens, cancel=cancel
        )
    )

    if as_json:
        click.echo(json.dumps({**result.to_dict(), "blueprint": result.data}, indent=2))
        sys.exit(0 if result.success else 1)

    if not result.success:
        label = "cancelled" if result.cancelled else f"failed after {result.attempts} attempt(s)"
        click.secho(f"❌ Drafting {label}: {result.error}", fg="red")
        _print_repair_log(result.repair_log)
        sys.exit(1)

    if out_file:
        Path(out_file).write_text(result.data + "\n", encoding="utf-8")
        click.secho(f"✅ Blueprint written to {out_file}", fg="green")
    else:
        click.echo(result.data)
    if result.attempts > 1 and not ctx.obj.get("quiet"):
        click.secho(f"   (repaired after {result.attempts - 1} failed attempt(s))", fg="yellow")


# ── spawn ───────────────────────────────────────────────────────


@cli.command()
@click.argument("prompt")
@click.option("--target", "-t", default=None, help="Generator target (default: from config).")
@click.option("--out", "-o", "out_dir", type=click.Path(file_okay=False), default=None,
              help="Parent directory for the project (default: cwd).")
@click.option("--option", "-O", "option_pairs", multiple=True, help="Target option key=value.")
@click.option("--context", "context_path", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Constitution/context file.")
@click.option("--research", is_flag=True, help="Research the domain before drafting.")
@click.option("--apply-schema/--no-apply-schema", default=False,
              help="Push the database schema with prisma (web target).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def spawn(
    ctx: click.Context,
    prompt: str,
    target: str | None,
    out_dir: str | None,
    option_pairs: tuple[str, ...],
    context_path: str | None,
    research: bool,
    apply_schema: bool,
    as_json: bool,
) -> None:
    """Spawn a complete app from a natural-language prompt."""
    from helix.core.services.schema_apply import PrismaPushApplier
    from helix.core.use_cases.spawn import run_spawn

    config = _config(ctx)
    registry = _registry(ctx)
    client = _make_client(config)
    executor = _executor(config)

    if not as_json and not ctx.obj.get("quiet"):
        click.secho("\n🧬 HELIX SPAWN\n", fg="cyan", bold=True)
        click.secho(f'Prompt: "{prompt}"\n', fg="bright_black")

    result = _run_cancellable(
        lambda cancel: run_spawn(
            prompt,
            registry,
            client,
            executor,
            target=target or config.default_target,
            output_dir=Path(out_dir) if out_dir else None,
            context=_read_context(context_path),
            options=_parse_options(option_pairs),
            applier_factory=PrismaPushApplier if apply_schema else None,
            model=config.model,
            max_tokens=config.max_tokens,
            research_model=config.research_model,
            research=research,
            cancel=cancel,
        )
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.cancelled:
        click.secho("⚠️  Spawn cancelled", fg="yellow")
        sys.exit(1)
    if result.error:
        click.secho(f"❌ Spawn failed: {result.error}", fg="red")
        _print_repair_log(result.repair_log)
        sys.exit(1)

    assert result.write is not None  # guaranteed on success
    click.secho("✅ App spawned successfully!\n", fg="green", bold=True)
    click.echo(f"📂 Project: {result.project_path}")
    click.echo(f"   Files written: {len(result.write.written)}")
    if result.dependencies:
        click.echo(f"   Dependencies: {', '.join(result.dependencies)}")
    if result.scaffold_command:
        click.echo(f"   Base project: {' '.join(result.scaffold_command)}")
    if result.repair_log:
        _print_repair_log(result.repair_log)
    click.echo()


# ── plugins / models ────────────────────────────────────────────


@cli.command()
@click.option("--scan", "scan_path", type=click.Path(exists=True, file_okay=False), default=None,
              help="Discover plugins declared by the project at this path.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plugins(ctx: click.Context, scan_path: str | None, as_json: bool) -> None:
    """List generator targets."""
    registry = _registry(ctx)
    report = registry.discover(Path(scan_path)) if scan_path else None

    if as_json:
        click.echo(json.dumps({
            "plugins": [e.to_dict() for e in registry.entries()],
            "discovery": report.to_dict() if report else None,
        }, indent=2))
        return

    click.secho("\n📦 Helix Plugin Registry\n", fg="cyan", bold=True)
    for entry in registry.entries():
        tag = click.style("[built-in]", fg="blue") if entry.is_builtin else click.style("[external]", fg="green")
        click.echo(f"  {entry.target:<12} → {entry.name} {entry.version} {tag}")

    if report is not None:
        click.echo()
        click.echo(f"  Scanned: {', '.join(report.manifests) or 'no manifests'}")
        for name, reason in report.skipped.items():
            click.secho(f"  ⚠️  {name}: {reason}", fg="yellow")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def models(ctx: click.Context, as_json: bool) -> None:
    """List known completion models."""
    from helix.adapters.openrouter import AVAILABLE_MODELS

    config = _config(ctx)
    if as_json:
        click.echo(json.dumps({
            "default": config.model,
            "research": config.research_model,
            "models": list(AVAILABLE_MODELS),
        }, indent=2))
        return

    for model in AVAILABLE_MODELS:
        marker = ""
        if model == config.model:
            marker = " ← default"
        elif model == config.research_model:
            marker = " ← research"
        click.echo(f"  • {model}{marker}")


# ── config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Helix configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate helix.yml configuration."""
    from helix.core.use_cases.config_check import check_config
    from helix.plugins.builtin import BUILTIN_PLUGINS

    result = check_config(
        config_path=ctx.obj.get("config_path"),
        known_targets=[cls.target for cls in BUILTIN_PLUGINS],
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Model: {result.config.model}")
        click.echo(f"   Max repair attempts: {result.config.max_repair_attempts}")
        click.echo(f"   Default target: {result.config.default_target}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


if __name__ == "__main__":
    cli()
