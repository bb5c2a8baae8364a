"""
azure-token-validator CLI - inspect and validate Azure AD JWT tokens

    azure-token-validator <token>                  Decode and validate a token
    azure-token-validator --tenant <id> <token>    Use tenant-specific discovery keys
    azure-token-validator --test-graph <token>     Also call Microsoft Graph with it
"""

import asyncio
import json
import logging
from typing import Optional

import typer

from .claims import Claims, TokenType, format_timestamp
from .errors import ConfigurationError, GraphAPIError, MalformedTokenError, TokenValidatorError
from .graph import GraphClient
from .validator import TokenValidator, ValidatorConfig

app = typer.Typer(
    name="azure-token-validator",
    help="Validates and inspects Azure AD JWT tokens",
    add_completion=False,
)


def display_token_info(claims: Claims) -> None:
    typer.echo("\n=== Token Information ===")
    typer.echo(f"Token type: {claims.token_type()}")
    typer.echo(f"Issuer: {claims.iss}")
    typer.echo(f"Audience: {claims.audience_display()}")

    typer.echo(f"Not before: {format_timestamp(claims.nbf)}")
    typer.echo(f"Issued at: {format_timestamp(claims.iat)}")
    typer.echo(f"Expiration: {format_timestamp(claims.exp)}")

    optional = [
        ("Name", claims.name),
        ("Email", claims.email),
        ("Username", claims.preferred_username),
        ("App ID", claims.appid),
        ("Scope", claims.scp),
    ]
    for label, value in optional:
        if value is not None:
            typer.echo(f"{label}: {value}")

    if claims.extra:
        typer.echo("\n=== Additional Claims ===")
        for key, value in claims.extra.items():
            typer.echo(f"{key}: {json.dumps(value, ensure_ascii=False)}")


async def _run(token: str, config: ValidatorConfig, test_graph: bool, endpoint: Optional[str]) -> int:
    async with TokenValidator(config) as validator:
        try:
            _, claims = validator.decode_token(token)
        except MalformedTokenError as e:
            typer.secho(f"❌ Failed to decode token: {e}", fg=typer.colors.RED)
            return 1

        display_token_info(claims)

        typer.echo("\n=== Validation Result ===")
        try:
            await validator.validate_token(token)
            typer.secho("✅ Token signature is valid", fg=typer.colors.GREEN)
        except TokenValidatorError as e:
            typer.secho(f"❌ Token validation failed: {e}", fg=typer.colors.RED)

    if not test_graph:
        return 0

    if claims.token_type() is not TokenType.ACCESS:
        typer.secho(
            "\n⚠️  Warning: Cannot test Graph API with an ID token. You need an access token.",
            fg=typer.colors.YELLOW,
        )
        return 0

    typer.echo("\n=== Graph API Test ===")
    async with GraphClient() as graph:
        try:
            if endpoint:
                response = await graph.call_endpoint(token, endpoint)
            else:
                response = await graph.get_me(token)
            typer.echo(f"Graph API response: {json.dumps(response, ensure_ascii=False)}")
        except GraphAPIError as e:
            typer.secho(f"❌ Graph API test failed: {e}", fg=typer.colors.RED)
    return 0


@app.command()
def main(
    token: Optional[str] = typer.Argument(None, help="JWT token to validate (prompted for if omitted)"),
    tenant: str = typer.Option("common", "--tenant", help="Azure AD tenant ID"),
    skip_expiration: bool = typer.Option(False, "--skip-expiration", help="Skip token expiration check"),
    test_graph: bool = typer.Option(False, "--test-graph", help="Test Microsoft Graph API with the token"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Custom Graph API endpoint (requires --test-graph)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Decode, display and validate an Azure AD token."""
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        level=logging.DEBUG if verbose else logging.WARNING,
    )

    if token is None:
        token = typer.prompt("Enter token")
    token = token.strip()

    # Audience validation is always off for this tool
    try:
        config = ValidatorConfig(
            tenant_id=tenant,
            validate_exp=not skip_expiration,
            validate_aud=False,
            validate_iss=True,
            leeway=300,
        )
    except ConfigurationError as e:
        raise typer.BadParameter(str(e), param_hint="--tenant") from e

    raise typer.Exit(code=asyncio.run(_run(token, config, test_graph, endpoint)))


if __name__ == "__main__":
    app()
