# cli.py
import os
import logging
import mimetypes
from typing import Optional

import click

from file_server.config.settings import get_settings
from file_server.errors import FileRegistryError
from file_server.registry import FileRegistry, build_registry

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _registry() -> FileRegistry:
    registry = build_registry(get_settings())
    try:
        registry.metadata_index.init_collections()
    except FileRegistryError as e:
        raise click.ClickException(f"{e.code}: {e.message}") from e
    return registry


def _resolve_owner(owner: Optional[str]) -> str:
    owner = owner or get_settings().default_owner
    if not owner:
        raise click.UsageError("No owner given; pass --owner or set DEFAULT_OWNER")
    return owner


owner_option = click.option("--owner", "owner", default=None, help="Owner id (defaults to DEFAULT_OWNER)")


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this command")
def cli(log_level):
    """CLI commands for the file server"""
    settings = get_settings()
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  Deployment Mode: {settings.deployment_mode}")
    print(f"  AWS Region: {settings.aws_region}")
    print(f"  AWS Endpoint: {settings.aws_endpoint_url}")
    print(f"  Content Backend: {settings.content_backend}")
    if settings.content_backend == "s3":
        print(f"  S3 Bucket: {settings.s3_bucket_name}")
    else:
        print(f"  Storage Dir: {settings.storage_dir}")
    print(f"  Metadata Backend: {settings.metadata_backend}")
    if settings.metadata_backend == "mongo":
        print(f"  MongoDB Database: {settings.mongodb_database}")
        print(f"  MongoDB Collection: {settings.mongodb_collection}")
    else:
        print(f"  Metadata DB Path: {settings.metadata_db_path}")
    print(f"  Owner Header: {settings.owner_header}")
    print(f"  Default Owner: {settings.default_owner}")
    print(f"  Log Level: {settings.log_level}")


@cli.command()
def init():
    """Create the metadata schema and check both stores"""
    registry = _registry()
    try:
        registry.metadata_index.ping()
        registry.content_store.init_store()
        registry.content_store.ping()
    except FileRegistryError as e:
        raise click.ClickException(f"{e.code}: {e.message}") from e
    finally:
        registry.metadata_index.close()
    print("✅ Metadata index and content store ready")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", default=8000, type=int, help="Port to listen on")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the HTTP API with uvicorn"""
    import uvicorn

    print(f"Starting file server on http://{host}:{port} (mode: {get_settings().deployment_mode})")
    uvicorn.run("file_server.main:create_app", factory=True, host=host, port=port, reload=reload)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--name", default=None, help="Name to store the file under (defaults to the file name)")
@click.option("--content-type", default=None, help="MIME type (guessed from the name when omitted)")
@owner_option
def upload(path, name, content_type, owner):
    """Upload a local file"""
    owner_id = _resolve_owner(owner)
    raw_name = name or os.path.basename(path)
    content_type = content_type or mimetypes.guess_type(raw_name)[0] or DEFAULT_CONTENT_TYPE

    registry = _registry()
    try:
        with open(path, "rb") as stream:
            record = registry.upload(
                owner_id=owner_id,
                raw_name=raw_name,
                content_type=content_type,
                stream=stream,
                declared_length=os.path.getsize(path),
            )
    except FileRegistryError as e:
        raise click.ClickException(f"{e.code}: {e.message}") from e
    finally:
        registry.metadata_index.close()
    print(f"Uploaded {record.name} ({record.content_length} bytes, {record.content_type})")


@cli.command()
@click.argument("name")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Destination file (defaults to the stored name in the current directory)")
@owner_option
def download(name, output, owner):
    """Download a file"""
    owner_id = _resolve_owner(owner)
    output = output or name

    registry = _registry()
    opened = completed = False
    try:
        with open(output, "wb") as sink:
            opened = True
            record = registry.download(owner_id, name, sink)
        completed = True
    except FileRegistryError as e:
        raise click.ClickException(f"{e.code}: {e.message}") from e
    finally:
        registry.metadata_index.close()
        # Never leave a truncated file behind
        if opened and not completed:
            os.remove(output)
    print(f"Downloaded {record.name} to {output} ({record.content_length} bytes)")


@cli.command(name="ls")
@owner_option
def list_files(owner):
    """List stored files"""
    owner_id = _resolve_owner(owner)

    registry = _registry()
    try:
        records = registry.list_files(owner_id)
    except FileRegistryError as e:
        raise click.ClickException(f"{e.code}: {e.message}") from e
    finally:
        registry.metadata_index.close()

    if not records:
        print(f"No files for owner {owner_id}")
        return
    for record in sorted(records, key=lambda r: r.name):
        print(f"{record.name}\t{record.content_type}\t{record.content_length}")


@cli.command(name="rm")
@click.argument("name")
@owner_option
def remove(name, owner):
    """Delete a file"""
    owner_id = _resolve_owner(owner)

    registry = _registry()
    try:
        registry.delete(owner_id, name)
    except FileRegistryError as e:
        raise click.ClickException(f"{e.code}: {e.message}") from e
    finally:
        registry.metadata_index.close()
    print(f"Deleted {name}")


if __name__ == "__main__":
    cli()
