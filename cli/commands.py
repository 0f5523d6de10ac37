"""Command handlers for the redirect-auth CLI"""

from rich.console import Console
from rich.table import Table

from config import ConfigLoader
from redirect_auth import AuthenticationController, MemorySessionStore, TokenVerifier
from redirect_auth.controller import strategy_from_config
from server import AuthServer


def show_authorize_url(config: ConfigLoader, redirect_uri: str, console: Console):
    """
    Print an authorize URL together with the state and nonce bound for it

    Args:
        config: Configuration loader
        redirect_uri: Callback URL registered with the provider
        console: Rich console for output
    """
    controller = AuthenticationController.from_config(config)
    session = MemorySessionStore()
    url = controller.build_authorize_url(session, redirect_uri)
    store = controller.state_store(session)

    table = Table(title="Authorize Request")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Response Type", " ".join(controller.response_types))
    table.add_row("Grant", "Authorization Code" if controller.uses_code_grant else "Implicit")
    table.add_row("State", store.session.get(store.keys.state) or "-")
    table.add_row("Nonce", store.session.get(store.keys.nonce) or "-")

    console.print(table)
    console.print(f"\n[bold]Authorize URL:[/bold]\n{url}")


def verify_token(config: ConfigLoader, id_token: str, nonce: str, console: Console) -> bool:
    """
    Verify an ID token against the configured client and report its subject

    Args:
        config: Configuration loader
        id_token: The ID token to verify
        nonce: Expected nonce, or None to skip the nonce check
        console: Rich console for output

    Returns:
        True if the token is valid
    """
    verifier = TokenVerifier(
        strategy_from_config(config),
        config.get_required("AUTH_CLIENT_ID"),
        config.get_required("AUTH_DOMAIN"),
    )

    if nonce is None:
        user_id = verifier.get_user_id(id_token)
    else:
        user_id = verifier.verify_nonce(id_token, nonce)

    if user_id is None:
        console.print(f"[red]✗ Invalid ID token[/red] ({verifier.algorithm}, issuer {verifier.issuer})")
        return False

    console.print(f"[green]✓ Valid ID token[/green] ({verifier.algorithm})")
    console.print(f"  User Id: {user_id}")
    return True


def run_server(debug: bool, bind_address: str, port: int, console: Console):
    """
    Start the authentication server (blocking)

    Args:
        debug: Whether debug logging is enabled
        bind_address: Override for the bind address
        port: Override for the port
        console: Rich console for output
    """
    server = AuthServer(debug=debug, bind_address=bind_address, port=port)
    if server.log_file:
        console.print(f"[yellow]Debug mode enabled - verbose logging will be written to {server.log_file}[/yellow]")
    console.print(f"Starting server at http://{server.bind_address}:{server.port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")
    server.run()
