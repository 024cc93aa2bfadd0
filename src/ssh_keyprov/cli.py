"""Command line interface: terminal prompts stand in for the confirmation gate."""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
import contextvars
from pathlib import Path
import threading
from typing import TypeVar

from pydantic import SecretStr
from rich.console import Console
from rich.table import Table
import typer

from ssh_keyprov.config import get_settings
from ssh_keyprov.exceptions import CancellationRequested, CommandFailure, KeyProvisioningError
from ssh_keyprov.logging_config import bind_session_context, clear_context, setup_logging
from ssh_keyprov.models import KeyMaterial, SessionInfo
from ssh_keyprov.provisioner import KeyProvisioner

app = typer.Typer(
    name="ssh-keyprov",
    help="Provision SSH keys locally or on a remote host",
    add_completion=False,
)
console = Console()

T = TypeVar("T")

HostOption = typer.Option(..., "--host", "-H", help="Remote host")
UserOption = typer.Option(..., "--user", "-u", help="Remote user")
PortOption = typer.Option(22, "--port", "-p", help="Remote SSH port")
PasswordOption = typer.Option(
    None, "--password", envvar="KEYPROV_PASSWORD", help="Password for the remote user"
)
IdentityOption = typer.Option(
    None, "--identity", "-i", help="Private key used to authenticate to the remote host"
)


def get_provisioner() -> KeyProvisioner:
    return KeyProvisioner(get_settings())


def _session_info(
    host: str, user: str, port: int, password: str | None, identity: Path | None
) -> SessionInfo:
    settings = get_settings()
    bind_session_context(host, user)
    return SessionInfo(
        host=host,
        user=user,
        port=port,
        password=SecretStr(password) if password else None,
        private_key_file=str(identity.expanduser()) if identity else None,
        connect_timeout=settings.connect_timeout,
    )


def _run_cancellable(fn: Callable[[], T], cancel_flag: threading.Event) -> T:
    """Run ``fn`` in a worker thread; Ctrl-C raises the cancel flag instead of killing it.

    The worker runs in a copy of the caller's context so bound log fields follow it.
    """
    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(contextvars.copy_context().run, fn)
        while True:
            try:
                return future.result(timeout=0.2)
            except FutureTimeout:
                continue
            except KeyboardInterrupt:
                console.print("[yellow]Cancelling…[/yellow]")
                cancel_flag.set()
                return future.result()


def _fail(e: Exception) -> typer.Exit:
    if isinstance(e, CancellationRequested):
        console.print("[yellow]Cancelled[/yellow]")
        return typer.Exit(code=130)
    console.print(f"[red]Error:[/red] {e}")
    if isinstance(e, CommandFailure) and e.output:
        console.print(e.output.rstrip(), markup=False)
    return typer.Exit(code=1)


def _print_material(material: KeyMaterial) -> None:
    table = Table(title="SSH key material")
    table.add_column("Item", style="cyan")
    table.add_column("Location", style="magenta")
    table.add_column("Value", style="green", overflow="fold")

    table.add_row(
        "Local public key",
        material.local_public_key_path or "N/A",
        (material.local_public_key or "<none>").strip(),
    )
    table.add_row(
        "Remote public key",
        material.remote_public_key_path or "N/A",
        (material.remote_public_key or "<none>").strip(),
    )
    table.add_row(
        "Remote authorized_keys",
        "",
        (
            material.remote_authorized_keys.strip() or "<empty>"
            if material.remote_authorized_keys is not None
            else "<missing>"
        ),
    )
    console.print(table)


class PromptGate:
    """Confirmation gate backed by terminal prompts.

    Answers are remembered, so the prompts can be asked up front on the main
    thread and replayed to a worker thread running the generation.
    """

    def __init__(self, assume_yes: bool = False, passphrase: str | None = None):
        self.assume_yes = assume_yes
        self._overwrite: bool | None = True if assume_yes else None
        self._passphrase: str | None = passphrase
        self._passphrase_asked = passphrase is not None

    def confirm_overwrite(self, material: KeyMaterial) -> bool:
        if self._overwrite is None:
            console.print(
                "[bold yellow]WARNING:[/bold yellow] This will overwrite the existing SSH key.\n"
                "If the key was being used to connect to other servers, those connections will "
                "fail until they are reconfigured to use the new key."
            )
            self._overwrite = typer.confirm("Do you still want to continue?", default=False)
        return self._overwrite

    def request_passphrase(self) -> str | None:
        if not self._passphrase_asked:
            self._passphrase_asked = True
            if self.assume_yes or not typer.confirm(
                "Use passphrase to protect private key?", default=False
            ):
                self._passphrase = ""
            else:
                self._passphrase = typer.prompt(
                    "Passphrase", hide_input=True, confirmation_prompt=True
                )
        return self._passphrase


@app.callback()
def callback(ctx: typer.Context):
    """
    SSH key provisioning
    """
    setup_logging(get_settings())
    # Bound fields (service, remote target) must not outlive the command
    ctx.call_on_close(clear_context)


@app.command()
def show(
    host: str = HostOption,
    user: str = UserOption,
    port: int = PortOption,
    password: str | None = PasswordOption,
    identity: Path | None = IdentityOption,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show local and remote key material."""
    info = _session_info(host, user, port, password, identity)
    try:
        material = get_provisioner().discover(info, threading.Event())
    except KeyProvisioningError as e:
        raise _fail(e) from e

    if json_output:
        typer.echo(material.model_dump_json(indent=2))
        return
    _print_material(material)


@app.command()
def generate(
    host: str = HostOption,
    user: str = UserOption,
    port: int = PortOption,
    password: str | None = PasswordOption,
    identity: Path | None = IdentityOption,
    local: bool = typer.Option(
        True, "--local/--remote", help="Generate on this machine or on the remote host"
    ),
    passphrase: str | None = typer.Option(
        None, "--passphrase", envvar="KEYPROV_PASSPHRASE", help="Private key passphrase"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Generate a new id_rsa key pair locally or on the remote host.

    Current key material is read first, so the remote host must already have
    ~/.ssh/id_rsa.pub even when generating locally.
    """
    info = _session_info(host, user, port, password, identity)
    provisioner = get_provisioner()
    cancel_flag = threading.Event()
    gate = PromptGate(assume_yes=yes, passphrase=passphrase)

    try:
        material = provisioner.discover(info, cancel_flag)
        # Prompt on the main thread; the worker replays the remembered answers
        if not material.has_local_key or gate.confirm_overwrite(material):
            gate.request_passphrase()
        result = _run_cancellable(
            lambda: provisioner.generate_keys(material, info, cancel_flag, gate, local=local),
            cancel_flag,
        )
    except KeyProvisioningError as e:
        raise _fail(e) from e

    if result is None:
        console.print("Aborted.")
        raise typer.Exit(code=1)

    console.print("[green]✓[/green] Key pair generated")
    _print_material(result)


@app.command()
def install(
    host: str = HostOption,
    user: str = UserOption,
    port: int = PortOption,
    password: str | None = PasswordOption,
    identity: Path | None = IdentityOption,
    file: Path | None = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="authorized_keys content to install"
    ),
    append_local: bool = typer.Option(
        False, "--append-local", help="Add the local public key to the remote authorized_keys"
    ),
):
    """Install the remote authorized_keys file (overwrites it)."""
    if (file is None) == (not append_local):
        console.print("[red]Error:[/red] pass exactly one of --file or --append-local")
        raise typer.Exit(code=2)

    info = _session_info(host, user, port, password, identity)
    provisioner = get_provisioner()
    try:
        if file is not None:
            provisioner.install(file.read_text(encoding="utf-8"), info)
        else:
            provisioner.add_local_key_to_authorized_keys(info, threading.Event())
    except (KeyProvisioningError, ValueError) as e:
        raise _fail(e) from e

    console.print(f"[green]✓[/green] authorized_keys installed on [cyan]{info.user_host}[/cyan]")


if __name__ == "__main__":
    app()
