"""Command line interface for StashBox."""

import argparse
import os
import sys
from typing import List, Optional

from .app import StashBoxApp
from .errors import NotFound, StashBoxError
from .filesystem import FilesystemService


OWNER_COMMANDS = ('ls', 'mkdir', 'put', 'get', 'rm', 'share', 'usage')


def format_size(size: int) -> str:
    """Format a byte count for humans, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    return f"{round(size / 1024 ** i, 2):g} {units[i]}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='stashbox',
        description='StashBox - folders and files on S3-compatible object storage'
    )
    parser.add_argument('--config', '-c', default='config.yaml', help='Configuration file path')
    parser.add_argument('--owner', '-o', help='Owner id (defaults to app.owner_id in config)')
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('check', help='Check the connection to the bucket')

    ls = commands.add_parser('ls', help='List a folder')
    ls.add_argument('path', nargs='?', default='', help='Folder path, root if omitted')

    mkdir = commands.add_parser('mkdir', help='Create a folder')
    mkdir.add_argument('name')
    mkdir.add_argument('--parent', '-p', default='', help='Parent folder path')

    put = commands.add_parser('put', help='Upload a local file')
    put.add_argument('file', help='Local file to upload')
    put.add_argument('--parent', '-p', default='', help='Destination folder path')
    put.add_argument('--name', '-n', help='Name to store the file under')
    put.add_argument('--content-type', help='MIME type (guessed if omitted)')

    get = commands.add_parser('get', help='Download a file by key')
    get.add_argument('key')
    get.add_argument('dest', help='Local destination path')

    rm = commands.add_parser('rm', help='Delete a file or folder (recursively) by key')
    rm.add_argument('key')

    share = commands.add_parser('share', help='Create or reuse a share token for a file')
    share.add_argument('key')

    resolve = commands.add_parser('resolve', help='Show the file behind a share token')
    resolve.add_argument('token')

    commands.add_parser('usage', help='Show storage usage')
    return parser


def run_command(args: argparse.Namespace, service: FilesystemService, owner: Optional[str]) -> int:
    """Execute one parsed command against a service."""
    if args.command == 'ls':
        entries = service.list(owner, args.path)
        if not entries:
            print("(empty)")
        for entry in entries:
            kind = 'd' if entry.is_folder else '-'
            name = entry.logical_name + ('/' if entry.is_folder else '')
            shared = '  [shared]' if entry.share_token else ''
            print(f"{kind} {entry.size_bytes:>12}  {name:<40} {entry.key}{shared}")

    elif args.command == 'mkdir':
        entry = service.create_folder(owner, args.parent, args.name)
        print(f"✓ Created folder {entry.path}")

    elif args.command == 'put':
        with open(args.file, 'rb') as f:
            content = f.read()
        name = args.name or os.path.basename(args.file)
        entry = service.upload(owner, args.parent, name, content,
                               content_type=args.content_type)
        print(f"✓ Uploaded {entry.path} ({format_size(entry.size_bytes)})")
        print(f"  key: {entry.key}")
        if entry.url:
            print(f"  url: {entry.url}")

    elif args.command == 'get':
        stored = service.read(owner, args.key)
        with open(args.dest, 'wb') as f:
            f.write(stored.body)
        print(f"✓ Downloaded {format_size(stored.size)} to {args.dest}")

    elif args.command == 'rm':
        try:
            service.delete_entry(owner, args.key)
        except NotFound:
            print(f"- Nothing to delete at {args.key}")
            return 0
        print(f"✓ Deleted {args.key}")

    elif args.command == 'share':
        token = service.share(owner, args.key)
        print(token)

    elif args.command == 'resolve':
        entry = service.resolve_share(args.token)
        print(f"{entry.logical_name} ({format_size(entry.size_bytes)}, {entry.content_type})")
        if entry.url:
            print(entry.url)

    elif args.command == 'usage':
        stats = service.usage(owner)
        print(f"Used {format_size(stats.used)} of {format_size(stats.limit)} "
              f"({stats.percent_used}%)")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    app = StashBoxApp(args.config)

    try:
        service = app.initialize(check_connection=args.command == 'check')

        if args.command == 'check':
            print(f"✓ Connected to bucket {service.store.bucket_name}")
            return 0

        owner = args.owner or app.owner_id
        if args.command in OWNER_COMMANDS and not owner:
            print("✗ No owner given: pass --owner or set app.owner_id", file=sys.stderr)
            return 2

        return run_command(args, service, owner)

    except StashBoxError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
