"""
Command-line interface for DID Linkage.

Usage:
    did-linkage did:key:z6Mk... https://example.com
    did-linkage did:ion:EiC... https://example.com --resolver-url ion=https://resolver.example/1.0/identifiers
"""

from __future__ import annotations

import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from did_linkage.contexts import bundled_context_loader
from did_linkage.did_key import KeyDIDResolver
from did_linkage.did_resolver import DIDResolverRegistry, HTTPBindingResolver, WebDIDResolver
from did_linkage.errors import NoLinkageFoundError
from did_linkage.verifier import DomainLinkageVerifier, LinkageResult


console = Console()


def format_result(result: LinkageResult) -> None:
    """Format and print verification result."""
    if result.verified:
        status_icon = "[bold green]VERIFIED[/]"
        panel_style = "green"
    elif isinstance(result.error, NoLinkageFoundError):
        status_icon = "[bold red]NOT LINKED[/]"
        panel_style = "red"
    else:
        status_icon = "[bold yellow]ERROR[/]"
        panel_style = "yellow"

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Status", status_icon)
    table.add_row("DID", result.did)
    table.add_row("Domain", result.domain)

    if result.credential:
        credential = result.credential
        table.add_row("Format", credential.format.value)
        table.add_row("Origin", credential.origin)
        if credential.issuance_date:
            table.add_row("Issued", credential.issuance_date)
        if credential.expiration_date:
            table.add_row("Expires", credential.expiration_date)

    if result.error and not result.verified:
        table.add_row("Error", f"[red]{result.error}[/]")

    console.print(Panel(table, title="Domain Linkage", border_style=panel_style))

    if result.diagnostics:
        console.print("\n[bold yellow]Rejected entries:[/]")
        for diagnostic in result.diagnostics:
            console.print(f"  [yellow]![/] {diagnostic}")


def build_registry(
    resolver_urls: tuple[str, ...],
    timeout: float,
    verify_ssl: bool,
) -> DIDResolverRegistry:
    """Build a resolver registry from ``method=url`` options."""
    registry = DIDResolverRegistry(
        [KeyDIDResolver(), WebDIDResolver(timeout=timeout, verify_ssl=verify_ssl)]
    )
    for value in resolver_urls:
        method, sep, url = value.partition("=")
        if not sep or not method or not url:
            raise click.BadParameter(
                f"expected METHOD=URL, got {value!r}", param_hint="--resolver-url"
            )
        registry.register(
            HTTPBindingResolver(url, method=method, timeout=timeout, verify_ssl=verify_ssl)
        )
    return registry


def result_to_dict(result: LinkageResult) -> dict:
    credential = result.credential
    return {
        "status": result.status.value,
        "verified": result.verified,
        "did": result.did,
        "domain": result.domain,
        "credential": {
            "format": credential.format.value,
            "issuer": credential.issuer,
            "origin": credential.origin,
            "types": credential.types,
            "issuance_date": credential.issuance_date,
            "expiration_date": credential.expiration_date,
        } if credential else None,
        "error": {
            "type": type(result.error).__name__,
            "message": str(result.error),
        } if result.error else None,
        "diagnostics": [str(d) for d in result.diagnostics],
    }


@click.command()
@click.argument("did", required=True)
@click.argument("domain", required=True)
@click.option(
    "--resolver-url",
    multiple=True,
    metavar="METHOD=URL",
    envvar="DID_LINKAGE_RESOLVER_URL",
    help="DID resolution endpoint for a method, e.g. ion=https://host/1.0/identifiers",
)
@click.option(
    "--remote-contexts",
    is_flag=True,
    help="Fetch JSON-LD contexts that are not bundled",
)
@click.option(
    "--no-ssl-verify",
    is_flag=True,
    envvar="DID_LINKAGE_NO_SSL_VERIFY",
    help="Disable SSL certificate verification",
)
@click.option(
    "--json-output",
    is_flag=True,
    help="Output result as JSON",
)
@click.option(
    "--timeout",
    type=float,
    default=30.0,
    envvar="DID_LINKAGE_TIMEOUT",
    help="HTTP request timeout in seconds",
)
@click.option("-v", "--verbose", is_flag=True, help="Log verification steps")
@click.version_option(package_name="did-linkage-verifier")
def main(
    did: str,
    domain: str,
    resolver_url: tuple[str, ...],
    remote_contexts: bool,
    no_ssl_verify: bool,
    json_output: bool,
    timeout: float,
    verbose: bool,
) -> None:
    """Verify that DID controls DOMAIN.

    DOMAIN must include the scheme, e.g. https://identity.foundation.
    Its /.well-known/did-configuration.json must carry a domain linkage
    credential for DID.

    Examples:

        did-linkage did:key:z6MkoTHsgNNrby8JzCNQ1iRLyW5QQ6R8Xuu6AA8igGrMVPUM https://identity.foundation

        did-linkage did:web:example.com https://example.com --json-output
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )

    registry = build_registry(resolver_url, timeout, not no_ssl_verify)
    verifier = DomainLinkageVerifier(
        document_loader=bundled_context_loader(allow_remote=remote_contexts),
        vdr_registry=registry,
        timeout=timeout,
        verify_ssl=not no_ssl_verify,
    )

    result = verifier.verify(did, domain)

    if json_output:
        console.print_json(data=result_to_dict(result))
    else:
        format_result(result)

    if result.verified:
        sys.exit(0)
    if isinstance(result.error, NoLinkageFoundError):
        sys.exit(1)
    sys.exit(2)


if __name__ == "__main__":
    main()
