"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
translation rows, provider listings, and router stats.
"""

from __future__ import annotations

from typing import NoReturn, Sequence

import typer

from .errors import AllProvidersExhausted, CommandError
from .models.datatypes import Translated, TranslationOutcome
from .providers.client import ProviderClient
from .telemetry.stats import RouterStats


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, CommandError):
        typer.secho(
            f"{command_name} failed at `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    elif isinstance(exc, AllProvidersExhausted):
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
        typer.secho(
            "Hint: configure an API key (environment variable or "
            "`lingoroute credentials <provider> --set`) for at least one provider.",
            fg=typer.colors.YELLOW,
            err=True,
        )
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_translations(outcome: TranslationOutcome, show_attempts: bool = False) -> None:
    """Print one row per input text with its provider or failure kind."""

    for index, result in enumerate(outcome.results):
        if isinstance(result, Translated):
            source = "cache" if result.cache_hit else f"{result.provider_id}/tier{result.provider_tier}"
            typer.echo(f"{index + 1}. [{source}] {result.text}")
        else:
            typer.echo(f"{index + 1}. [failed:{result.error_kind.value}] {result.message}")
        if show_attempts:
            for attempt in result.attempts:
                kind = f" {attempt.error_kind.value}" if attempt.error_kind is not None else ""
                typer.echo(
                    f"   - {attempt.provider_id} tier={attempt.provider_tier} "
                    f"{attempt.outcome.value}{kind} latency={attempt.latency_seconds:.3f}s"
                )


def echo_provider_list(providers: Sequence[ProviderClient], target_lang: str | None) -> None:
    """Print the ordered provider list without credential material."""

    label = target_lang or "any"
    typer.echo(f"Provider order (target: {label}):")
    for position, provider in enumerate(providers, start=1):
        metadata = provider.config.as_metadata()
        availability = "available" if provider.is_available else "unavailable"
        preferred = metadata["preferred_languages"] or "-"
        typer.echo(
            f"{position}. {provider.provider_id} kind={metadata['kind']} tier={metadata['tier']} "
            f"{availability} enabled={metadata['enabled']} preferred={preferred} "
            f"credential={metadata['credential_source']}"
        )


def echo_router_stats(stats: RouterStats) -> None:
    """Print cache and per-provider counters."""

    metadata = stats.as_metadata()
    typer.echo(
        f"Cache: hits={metadata['cache_hits']} misses={metadata['cache_misses']} "
        f"size={metadata['cache_size']} hit_rate={metadata['cache_hit_rate']}"
    )
    for provider in stats.providers:
        if provider.attempts == 0 and provider.skips == 0:
            continue
        typer.echo(
            f"Provider {provider.provider_id}: attempts={provider.attempts} "
            f"successes={provider.successes} failures={provider.failures} "
            f"skips={provider.skips} retries={provider.retries} "
            f"calls={provider.upstream_calls}"
        )
    typer.echo(f"Estimated cost (USD): {metadata['total_cost_usd']}")
