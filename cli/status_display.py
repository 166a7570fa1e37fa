"""Status display functionality for CLI"""

from rich.table import Table
from utils.storage import CredentialStore


def show_credential_status(storage: CredentialStore, console):
    """
    Display credential status without secrets

    Args:
        storage: CredentialStore instance
        console: Rich console for output
    """
    status = storage.get_status()

    table = Table(title="Credential Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Has Tokens", "Yes" if status["has_tokens"] else "No")
    table.add_row("Is Expired", "Yes" if status["is_expired"] else "No")

    if status["expires_at"]:
        table.add_row("Expires At", status["expires_at"])
        table.add_row("Time Until Expiry", status["time_until_expiry"])

    if status["has_tokens"]:
        table.add_row("Subscription", status["subscription_type"])
        table.add_row("Rate Limit Tier", status["rate_limit_tier"])

    table.add_row("Credentials File", str(storage.credentials_file))

    console.print(table)


def print_snapshot(data: dict, console):
    """
    Print a usage snapshot as JSON, or its error message

    Args:
        data: Snapshot dict from PulseService.refresh()
        console: Rich console for output
    """
    if data.get("error"):
        console.print(f"[red]ERROR:[/red] {data['errorMessage']} [dim]({data['errorType']})[/dim]")
        return
    console.print_json(data=data)
