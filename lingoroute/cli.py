"""Command-line interface for lingoroute.

Responsibilities:
- Expose user-facing commands for translating text and inspecting providers.
- Convert CLI arguments into `TranslationConfig` and run the fallback router.
- Manage keyring-stored provider API keys.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import typer

from .api import build_router
from .cli_rendering import (
    echo_provider_list,
    echo_router_stats,
    echo_translations,
    exit_with_command_error,
)
from .config import ConfigLoader, TranslationConfig
from .credentials import create_credential_store
from .errors import CommandError
from .models.datatypes import TranslationRequest
from .parsing import normalize_language_code, normalize_optional_string
from .telemetry.logger import configure_logging

app = typer.Typer(
    name="lingoroute",
    no_args_is_help=True,
    help="Tiered machine translation with fallback, caching, and rate limiting.",
)


def _load_config(config_path: Path | None) -> TranslationConfig:
    """Load YAML config (when given) plus environment overrides, mapping failures to command errors."""

    try:
        base = ConfigLoader.from_yaml(config_path) if config_path is not None else None
        return ConfigLoader.from_env(os.environ, base=base)
    except FileNotFoundError as exc:
        raise CommandError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise CommandError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _known_provider_ids(config: TranslationConfig) -> list[str]:
    """Return configured provider identifiers in tier order."""

    return [provider.provider_id for provider in sorted(config.providers, key=lambda p: p.tier)]


@app.command("translate")
def translate_command(
    texts: Annotated[list[str], typer.Argument(help="Source texts to translate.")],
    target_lang: Annotated[
        str, typer.Option("--to", help="Target language code, for example `fi` or `pt-BR`.")
    ],
    source_lang: Annotated[
        str | None,
        typer.Option("--from", help="Source language code (defaults to config `source_lang`)."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Optional YAML config file."),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", min=0.001, help="Batch deadline in seconds."),
    ] = None,
    context: Annotated[
        str | None,
        typer.Option("--context", help="Context hint forwarded to LLM-backed providers."),
    ] = None,
    show_attempts: Annotated[
        bool,
        typer.Option("--show-attempts", help="Print the per-text provider attempt log."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Print debug routing events to stderr."),
    ] = False,
) -> None:
    """Translate texts through the provider fallback chain."""

    configure_logging(level="DEBUG" if verbose else "WARNING")
    try:
        config = _load_config(config_file)
        request = TranslationRequest(
            texts=tuple(texts),
            source_lang=source_lang or config.source_lang,
            target_lang=target_lang,
            context_hint=normalize_optional_string(context),
        )
        with build_router(config, env=os.environ, store=create_credential_store()) as router:
            outcome = router.translate(request, timeout=timeout)
            stats = router.stats()
    except Exception as exc:
        exit_with_command_error("translate", exc)

    echo_translations(outcome, show_attempts=show_attempts)
    echo_router_stats(stats)
    if not outcome.all_succeeded:
        failed = len(outcome.failed_indices())
        typer.secho(
            f"{failed} of {len(outcome.results)} text(s) could not be translated.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)


@app.command("providers")
def providers_command(
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Optional YAML config file."),
    ] = None,
    target_lang: Annotated[
        str | None,
        typer.Option("--lang", help="Show provider order for this target language."),
    ] = None,
) -> None:
    """List providers in routing order with their availability."""

    configure_logging(level="WARNING")
    try:
        config = _load_config(config_file)
        normalized_lang = None
        if target_lang is not None:
            normalized_lang = normalize_language_code(target_lang)
            if normalized_lang is None:
                raise CommandError(
                    stage="arguments",
                    detail=f"`{target_lang}` is not a language code.",
                    hint="Use an ISO 639-1 code such as `fi` or `pt-BR`.",
                )
        with build_router(config, env=os.environ, store=create_credential_store()) as router:
            ordered = (
                router.order_providers(normalized_lang)
                if normalized_lang is not None
                else list(router.providers)
            )
    except Exception as exc:
        exit_with_command_error("providers", exc)

    echo_provider_list(ordered, normalized_lang)


@app.command("credentials")
def credentials_command(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier, for example `deepl`.")],
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set",
            help="Prompt for the provider API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear",
            help="Clear the stored provider API key from secure credential storage.",
        ),
    ] = False,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Optional YAML config file."),
    ] = None,
) -> None:
    """Manage securely stored provider API keys."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            CommandError(
                stage="credentials",
                detail="`--set` and `--clear` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    try:
        config = _load_config(config_file)
        provider = config.provider(provider_id)
    except KeyError:
        exit_with_command_error(
            "credentials",
            CommandError(
                stage="credentials",
                detail=f"Unknown provider `{provider_id}`.",
                hint=f"Known providers: {', '.join(_known_provider_ids(config))}.",
            ),
        )
    except Exception as exc:
        exit_with_command_error("credentials", exc)

    account = (
        provider.credential.keyring_account
        if provider.credential is not None and provider.credential.keyring_account
        else f"{provider.provider_id}_api_key"
    )
    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                f"{provider.provider_id} API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                CommandError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set`.",
                ),
            )
        try:
            credential_store.set_api_key(account, prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                CommandError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {type(exc).__name__}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo(f"{provider.provider_id} API key stored in secure credential storage.")
        return

    if clear_api_key:
        removed = credential_store.clear_api_key(account)
        if removed:
            typer.echo(f"Stored {provider.provider_id} API key cleared from secure credential storage.")
        else:
            typer.echo(f"No stored {provider.provider_id} API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    status = "present" if credential_store.get_api_key(account) is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored {provider.provider_id} API key: {status}")
    typer.echo(
        "Credential sources: "
        + (provider.credential.describe_source() if provider.credential is not None else "none")
    )


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
