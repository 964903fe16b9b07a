"""Guided setup wizard for Pitlane (pitlane setup)."""

import asyncio
import enum
import logging
import secrets
import sys
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm

from .config import Config
from .dburl import InvalidDatabaseUrl, normalize_database_url
from .envfile import update_env_file
from .stripe_cli import StripeCLI, StripeCLIError

logger = logging.getLogger(__name__)

console = Console()

TOTAL_STEPS = 6
STRIPE_API_KEYS_URL = "https://dashboard.stripe.com/test/apikeys"
STRIPE_CLI_DOCS_URL = "https://docs.stripe.com/stripe-cli"
STDERR_TAIL_LINES = 5


class SetupState(enum.Enum):
    CHECKING_TOOL = "checking_tool"
    COLLECTING_KEY = "collecting_key"
    PROVISIONING_WEBHOOK = "provisioning_webhook"
    GENERATING_SECRET = "generating_secret"
    COLLECTING_DATABASE_URL = "collecting_database_url"
    WRITING_CONFIG = "writing_config"
    DONE = "done"
    ABORTED = "aborted"


class AbortReason(enum.Enum):
    TOOL_MISSING = "tool_missing"
    AUTH_DECLINED = "auth_declined"
    AUTH_FAILED = "auth_failed"


@dataclass(frozen=True)
class CollectedSecrets:
    stripe_secret_key: str
    stripe_webhook_secret: str
    base_url: str
    auth_secret: str
    database_url: str

    def as_env(self) -> dict[str, str]:
        return {
            "STRIPE_SECRET_KEY": self.stripe_secret_key,
            "STRIPE_WEBHOOK_SECRET": self.stripe_webhook_secret,
            "BASE_URL": self.base_url,
            "AUTH_SECRET": self.auth_secret,
            "DATABASE_URL": self.database_url,
        }

    def __repr__(self) -> str:
        """Mask secrets in repr to prevent accidental leakage."""
        return f"CollectedSecrets(base_url={self.base_url!r}, ...)"


@dataclass(frozen=True)
class SetupResult:
    """Outcome of a wizard run: either ``secrets`` or an ``abort_reason``."""

    state: SetupState
    secrets: CollectedSecrets | None = None
    abort_reason: AbortReason | None = None
    env_path: Path | None = None

    @property
    def ok(self) -> bool:
        return self.state is SetupState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def _rule(step: int, title: str) -> None:
    console.rule(f"Step {step} of {TOTAL_STEPS}: {title}")


def _tail(text: str, lines: int = STDERR_TAIL_LINES) -> list[str]:
    """Last few non-blank lines of a command's stderr."""
    return [line for line in text.splitlines() if line.strip()][-lines:]


async def _ask(prompt: str) -> str:
    """Read one line from the operator without blocking the event loop."""
    return await asyncio.to_thread(console.input, prompt)


async def _confirm(prompt: str) -> bool:
    return await asyncio.to_thread(Confirm.ask, prompt, default=False, console=console)


def _print_install_help() -> None:
    console.print("\n  [red]Stripe CLI is not installed.[/red] Please install it and try again.\n")
    console.print("  To install the Stripe CLI:")
    console.print(f"  1. Visit: {STRIPE_CLI_DOCS_URL}")
    console.print("  2. Download and install the Stripe CLI for your operating system")
    console.print("  3. After installation, run: [bold]stripe login[/bold]")
    console.print("\n  After installation and authentication, run [bold]pitlane setup[/bold] again.")


async def _step_check_stripe_cli(cli: StripeCLI) -> AbortReason | None:
    """Step 1: Make sure the Stripe CLI is installed and logged in.

    Returns None when it's good to go, otherwise the reason to stop.
    The auth check is retried exactly once, after the operator says
    they've logged in.
    """
    _rule(1, "Stripe CLI")

    if not await cli.is_installed():
        _print_install_help()
        return AbortReason.TOOL_MISSING
    console.print("\n  [green]✓[/green] Stripe CLI is installed.")

    if await cli.is_authenticated():
        console.print("  [green]✓[/green] Stripe CLI is authenticated.")
        return None

    console.print("\n  [yellow]Stripe CLI is not authenticated or the authentication has expired.[/yellow]")
    console.print("  In another terminal, run: [bold]stripe login[/bold]\n")
    if not await _confirm("  Have you completed the authentication?"):
        console.print("  Please authenticate with the Stripe CLI and run [bold]pitlane setup[/bold] again.")
        return AbortReason.AUTH_DECLINED

    if not await cli.is_authenticated():
        console.print("  [red]Failed to verify Stripe CLI authentication. Please try again.[/red]")
        return AbortReason.AUTH_FAILED
    console.print("  [green]✓[/green] Stripe CLI authentication confirmed.")
    return None


async def _step_secret_key() -> str:
    """Step 2: Get the Stripe secret key. Taken verbatim, no validation."""
    _rule(2, "Stripe Secret Key")
    console.print(f"\n  You can find your Stripe Secret Key at: {STRIPE_API_KEYS_URL}\n")
    return await _ask("  Enter your Stripe Secret Key: ")


async def _step_webhook_secret(cli: StripeCLI) -> str:
    """Step 3: Mint a webhook signing secret with ``stripe listen``."""
    _rule(3, "Stripe Webhook")
    console.print("\n  Creating Stripe webhook...")
    try:
        secret = await cli.print_webhook_secret()
    except StripeCLIError as exc:
        console.print(
            "  [red]Failed to create Stripe webhook.[/red] "
            "Check your Stripe CLI installation and permissions."
        )
        for line in _tail(exc.stderr):
            console.print(f"  [dim]{escape(line)}[/dim]")
        if sys.platform == "win32":
            console.print("  Note: On Windows, you may need to run this as an administrator.")
        raise
    console.print("  [green]✓[/green] Stripe webhook created.")
    return secret


def generate_auth_secret() -> str:
    """Return 32 random bytes as 64 lowercase hex characters."""
    return secrets.token_hex(32)


async def _step_auth_secret() -> str:
    """Step 4: Generate AUTH_SECRET locally."""
    _rule(4, "Auth Secret")
    secret = generate_auth_secret()
    console.print("\n  [green]✓[/green] Generated AUTH_SECRET.")
    return secret


async def _step_database_url() -> str:
    """Step 5: Get the database URL, escaping its password if needed."""
    _rule(5, "Database URL")
    console.print("\n  You can find your Database URL in your database provider's project settings.\n")
    url = await _ask("  Enter your Database URL: ")
    try:
        return normalize_database_url(url)
    except InvalidDatabaseUrl:
        console.print("  [red]Invalid database URL format.[/red]")
        raise


async def _step_write_env(env_path: Path, collected: CollectedSecrets) -> None:
    """Step 6: Merge the collected values into the project's .env."""
    _rule(6, "Write .env")
    console.print(f"\n  Writing environment variables to {env_path}")
    update_env_file(env_path, collected.as_env())
    console.print(f"  [green]✓[/green] {env_path.name} updated with the necessary variables.")


async def check_stripe_cli(config: Config) -> SetupResult:
    """Run step 1 on its own (``pitlane check``)."""
    reason = await _step_check_stripe_cli(StripeCLI(config.stripe_bin))
    if reason is not None:
        logger.warning("Stripe CLI check failed: %s", reason.value)
        return SetupResult(state=SetupState.ABORTED, abort_reason=reason)
    return SetupResult(state=SetupState.DONE)


async def run_setup(config: Config, cwd: Path | None = None) -> SetupResult:
    """Run the six wizard steps in order.

    Explicit stops (CLI missing, login declined or still failing) come
    back as an ABORTED result. Errors from later steps propagate; nothing
    is written to disk before the last step, so an earlier .env survives
    untouched.
    """
    cli = StripeCLI(config.stripe_bin)
    env_path = config.env_path(cwd)
    state = SetupState.CHECKING_TOOL

    def _advance(to: SetupState) -> SetupState:
        logger.debug("Setup %s -> %s", state.value, to.value)
        return to

    try:
        reason = await _step_check_stripe_cli(cli)
        if reason is not None:
            logger.warning("Setup aborted at %s: %s", state.value, reason.value)
            return SetupResult(state=SetupState.ABORTED, abort_reason=reason, env_path=env_path)

        state = _advance(SetupState.COLLECTING_KEY)
        stripe_secret_key = await _step_secret_key()

        state = _advance(SetupState.PROVISIONING_WEBHOOK)
        webhook_secret = await _step_webhook_secret(cli)

        state = _advance(SetupState.GENERATING_SECRET)
        auth_secret = await _step_auth_secret()

        state = _advance(SetupState.COLLECTING_DATABASE_URL)
        database_url = await _step_database_url()

        collected = CollectedSecrets(
            stripe_secret_key=stripe_secret_key,
            stripe_webhook_secret=webhook_secret,
            base_url=config.base_url,
            auth_secret=auth_secret,
            database_url=database_url,
        )

        state = _advance(SetupState.WRITING_CONFIG)
        await _step_write_env(env_path, collected)
    except Exception:
        # The console already tells the operator; the traceback is for LOG_LEVEL=DEBUG.
        logger.debug("Setup failed during %s", state.value, exc_info=True)
        raise

    state = _advance(SetupState.DONE)
    return SetupResult(state=state, secrets=collected, env_path=env_path)


def _run_and_exit(coro) -> None:
    try:
        result: SetupResult = asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n  [yellow]Aborted.[/yellow] Nothing was written.")
        sys.exit(130)
    except Exception as exc:
        console.print(f"\n  [red]Setup failed:[/red] {escape(str(exc))}")
        sys.exit(1)
    if not result.ok:
        sys.exit(result.exit_code)


def setup_command(args, config: Config | None = None) -> None:
    """Main setup wizard entrypoint."""
    if config is None:
        config = Config.from_env()
    cwd = Path(args.cwd).resolve() if getattr(args, "cwd", None) else None

    console.print()
    console.print(Panel("[bold]Pitlane — Setup Wizard[/bold]"))

    _run_and_exit(run_setup(config, cwd))

    env_path = config.env_path(cwd)
    console.print()
    console.print(Panel(
        f"[green]✓[/green] Config saved to {env_path}\n"
        f"[green]✓[/green] Next: start your app and open {config.base_url}"
    ))


def check_command(args, config: Config | None = None) -> None:
    """Entrypoint for ``pitlane check``."""
    if config is None:
        config = Config.from_env()
    _run_and_exit(check_stripe_cli(config))
    console.print("\n  [green]✓[/green] Stripe CLI is ready.")
