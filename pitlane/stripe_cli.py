"""Thin async wrapper around the Stripe CLI.

Only exit status and stdout are observed. Nothing here parses structured
output; the one piece of data we need (the webhook signing secret) is
pulled out of ``stripe listen --print-secret`` with a regex.
"""

import asyncio
import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Stripe webhook signing secrets look like whsec_<alphanumerics>.
WEBHOOK_SECRET_RE = re.compile(r"whsec_[a-zA-Z0-9]+")


class StripeCLIError(RuntimeError):
    """A Stripe CLI invocation could not be run or exited non-zero."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class WebhookSecretNotFound(ValueError):
    """The CLI ran but its output had no whsec_ secret in it."""


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def extract_webhook_secret(output: str) -> str:
    """Return the first ``whsec_...`` token in *output*.

    Raises WebhookSecretNotFound if there isn't one.
    """
    match = WEBHOOK_SECRET_RE.search(output)
    if not match:
        raise WebhookSecretNotFound("Failed to extract Stripe webhook secret")
    return match.group(0)


class StripeCLI:
    """Runs ``stripe`` subcommands one at a time."""

    def __init__(self, binary: str = "stripe") -> None:
        self.binary = binary

    async def run(self, *args: str) -> CommandResult:
        """Run ``<binary> *args`` and capture its output.

        Raises StripeCLIError if the binary can't be started at all.
        A non-zero exit is *not* an error here; check ``result.ok``.
        """
        logger.debug("Running %s %s", self.binary, " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise StripeCLIError(f"Could not run {self.binary}: {exc}") from exc
        stdout, stderr = await proc.communicate()
        result = CommandResult(
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
        logger.debug("%s %s exited %d", self.binary, args[0] if args else "", result.returncode)
        return result

    async def is_installed(self) -> bool:
        """True if ``stripe --version`` runs and exits cleanly."""
        try:
            result = await self.run("--version")
        except StripeCLIError:
            return False
        return result.ok

    async def is_authenticated(self) -> bool:
        """True if ``stripe config --list`` succeeds."""
        try:
            result = await self.run("config", "--list")
        except StripeCLIError:
            return False
        return result.ok

    async def print_webhook_secret(self) -> str:
        """Mint a webhook signing secret via ``stripe listen --print-secret``.

        Raises StripeCLIError if the command fails and
        WebhookSecretNotFound if it succeeds without printing a secret.
        """
        result = await self.run("listen", "--print-secret")
        if not result.ok:
            raise StripeCLIError(
                f"{self.binary} listen --print-secret exited with status {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return extract_webhook_secret(result.stdout)
