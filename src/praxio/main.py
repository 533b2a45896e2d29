"""CLI entrypoint for praxio."""

import logging
import sys

import rich_click as click

from praxio import __version__
from praxio.config import Settings
from praxio.delegation.backend import SUPPORTED_PROVIDERS
from praxio.delegation.controllers import DelegationCliController, InvokeCommand

click.rich_click.USE_MARKDOWN = True


@click.group()
@click.version_option(version=__version__, prog_name="praxio")
@click.pass_context
def praxio(ctx: click.Context) -> None:
    """Delegate prompts to the claude and gemini CLIs."""

    try:
        settings = Settings.from_env()
        settings.validate()
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.logging_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = DelegationCliController(settings)


@praxio.command("providers")
@click.pass_obj
def providers(controller: DelegationCliController) -> None:
    """Check which provider CLIs are installed and configured."""

    result = controller.providers()
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("No provider is available.")


@praxio.command("invoke")
@click.argument("provider", type=click.Choice(SUPPORTED_PROVIDERS, case_sensitive=False))
@click.option("--prompt", required=True, help="Prompt text sent to the provider CLI.")
@click.option("--system-prompt", default=None, help="Optional system prompt.")
@click.option("--model", default=None, help="Model override for the provider CLI.")
@click.option(
    "--fallback-model",
    default=None,
    help="Fallback model when the primary is overloaded (claude only).",
)
@click.option(
    "--timeout-seconds",
    type=click.IntRange(min=1),
    default=None,
    help="Per-call timeout; defaults to the provider setting.",
)
@click.pass_obj
def invoke(  # noqa: PLR0913
    controller: DelegationCliController,
    provider: str,
    prompt: str,
    system_prompt: str | None,
    model: str | None,
    fallback_model: str | None,
    timeout_seconds: int | None,
) -> None:
    """Send one prompt and print the normalized response as JSON."""

    result = controller.invoke(
        InvokeCommand(
            provider=provider.lower(),
            prompt=prompt,
            system_prompt=system_prompt,
            model=model,
            fallback_model=fallback_model,
            timeout_seconds=timeout_seconds,
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(f"{provider} invocation failed.")


@praxio.command("serve")
@click.pass_obj
def serve(controller: DelegationCliController) -> None:
    """Serve JSON-lines requests on stdin/stdout; sessions live until stdin closes."""

    controller.serve()


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    praxio()
