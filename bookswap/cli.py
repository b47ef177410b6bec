"""
Command-line interface for BookSwap.

Notes
-----
The CLI is thin. It parses arguments, opens the engine for a
data root and delegates to engine operations. The active session is part of
the persisted snapshot, so ``login`` in one invocation carries over to the
next.

Exit codes
----------
- 0: success
- 2: domain or persistence error (message printed as ``ERROR: ...``)
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Callable

from exchange_engine.covers import CoverSource
from exchange_engine.data_models import Book, Conversation, Message, UserRole
from exchange_engine.engine import ExchangeEngine, open_engine
from exchange_engine.errors import ExchangeError
from exchange_engine.logging_config import configure_logging
from exchange_engine.paths import (
    DataRootError,
    ExchangePaths,
    ensure_directories,
    paths_as_text,
    resolve_paths,
)
from exchange_engine.settings import STORAGE_BACKENDS, load_settings, save_settings
from exchange_engine.snapshot_store.errors import SnapshotError


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--data-root",
        default=None,
        help="Override BookSwap data root (primarily for testing). If omitted, defaults are used.",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ...). Defaults to the configured level.",
    )
    p.add_argument(
        "--log-to-file",
        action="store_true",
        help="Also write log records to <data_root>/logs/bookswap.log.",
    )


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser.
    """
    parser = argparse.ArgumentParser(
        prog="bookswap",
        description="BookSwap peer-to-peer book exchange",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init_p = sub.add_parser("init", help="Create the data root and optionally update settings")
    init_p.add_argument("--backend", choices=STORAGE_BACKENDS, default=None, help="Snapshot storage backend")
    init_p.add_argument("--no-seed", action="store_true", help="Start without the demo accounts")
    init_p.add_argument("--print-paths", action="store_true", help="Print resolved paths")

    reg_p = sub.add_parser("register", help="Register a new user and log in as them")
    reg_p.add_argument("--name", required=True)
    reg_p.add_argument("--email", required=True)
    reg_p.add_argument("--password", required=True)
    reg_p.add_argument("--phone", default="")
    reg_p.add_argument("--role", required=True, choices=[r.value for r in UserRole])

    login_p = sub.add_parser("login", help="Log in")
    login_p.add_argument("--email", required=True)
    login_p.add_argument("--password", required=True)

    sub.add_parser("logout", help="Log out")
    sub.add_parser("whoami", help="Show the logged-in user")

    add_p = sub.add_parser("add", help="List a book (owners only)")
    add_p.add_argument("--title", required=True)
    add_p.add_argument("--author", required=True)
    add_p.add_argument("--location", required=True)
    add_p.add_argument("--contact", required=True)
    add_p.add_argument("--genre", default=None)
    cover = add_p.add_mutually_exclusive_group(required=False)
    cover.add_argument("--cover-url", default=None, help="Cover image URL")
    cover.add_argument("--cover-file", type=Path, default=None, help="Cover image file to embed")

    books_p = sub.add_parser("books", help="List books")
    books_p.add_argument("--mine", action="store_true", help="Only books owned by the logged-in user")
    books_p.add_argument("--recent", type=int, default=None, help="Only the N most recent books")

    search_p = sub.add_parser("search", help="Search books by title, author, genre or location")
    search_p.add_argument("query")

    toggle_p = sub.add_parser("toggle", help="Toggle availability of one of your books")
    toggle_p.add_argument("book_id")

    delete_p = sub.add_parser("delete", help="Delete one of your books")
    delete_p.add_argument("book_id")

    send_p = sub.add_parser("send", help="Send a message about a book")
    send_p.add_argument("--to", dest="receiver_id", required=True, help="Recipient user id")
    send_p.add_argument("--book", dest="book_id", required=True, help="Book id")
    send_p.add_argument("--content", required=True)
    send_p.add_argument("--request", action="store_true", help="Send as a borrow request")

    sub.add_parser("inbox", help="List conversations, most recent first")

    thread_p = sub.add_parser("thread", help="Show the messages exchanged with one user")
    thread_p.add_argument("partner_id")
    thread_p.add_argument("--mark-read", action="store_true", help="Mark incoming messages as read")

    read_p = sub.add_parser("read", help="Mark a message as read")
    read_p.add_argument("message_id")

    accept_p = sub.add_parser("accept", help="Accept a borrow request addressed to you")
    accept_p.add_argument("message_id")

    sub.add_parser("unread", help="Print the number of unread messages")

    export_p = sub.add_parser("export", help="Export the snapshot to a .json or .json.zst archive")
    export_p.add_argument("path", type=Path)
    export_p.add_argument("--overwrite", action="store_true")

    import_p = sub.add_parser("import", help="Replace the snapshot with an archive's contents")
    import_p.add_argument("path", type=Path)

    for subparser in sub.choices.values():
        _add_common(subparser)

    return parser


def _render_book(book: Book) -> str:
    status = "available" if book.available else "reserved"
    genre = f" [{book.genre}]" if book.genre else ""
    return f"{book.id}  {book.title} by {book.author}{genre}  @ {book.location}  ({status}, owner {book.owner_name})"


def _render_conversation(conv: Conversation) -> str:
    unread = f"  [{conv.unread_count} unread]" if conv.unread_count else ""
    return (
        f"{conv.partner_id}  {conv.partner_name}  re: {conv.book_title}  "
        f"{conv.last_message_at.isoformat()}  {conv.last_message}{unread}"
    )


def _render_message(msg: Message, viewer_id: str) -> str:
    who = "me" if msg.sender_id == viewer_id else msg.sender_name
    tag = " [request]" if msg.is_request else ""
    unread = " *" if msg.receiver_id == viewer_id and not msg.is_read else ""
    return f"{msg.id}  {msg.created_at.isoformat()}  {who}{tag}: {msg.content}{unread}"


def _cmd_init(args: argparse.Namespace, paths: ExchangePaths) -> int:
    ensure_directories(paths)
    settings = load_settings(paths)
    updated = settings
    if args.backend is not None:
        updated = replace(updated, storage_backend=args.backend)
    if args.no_seed:
        updated = replace(updated, seed_defaults=False)
    if updated != settings or not paths.settings_path.exists():
        save_settings(paths, updated)
    if args.print_paths:
        print(paths_as_text(paths))
    return 0


def _cmd_register(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    user = engine.identity.register(args.name, args.email, args.password, args.phone, UserRole(args.role))
    print(f"Welcome, {user.name}! (id {user.id})")
    return 0


def _cmd_login(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    engine.identity.login(args.email, args.password)
    user = engine.identity.require_session()
    print(f"Welcome back, {user.name}!")
    return 0


def _cmd_logout(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    engine.identity.logout()
    print("Logged out.")
    return 0


def _cmd_whoami(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    user = engine.identity.current_user
    if user is None:
        print("Not logged in.")
        return 0
    print(f"{user.id}  {user.name} <{user.email}>  {user.role.value}")
    return 0


def _cmd_add(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    cover: CoverSource | None = None
    if args.cover_url:
        cover = CoverSource.from_url(args.cover_url)
    elif args.cover_file is not None:
        try:
            cover = CoverSource.from_bytes(args.cover_file.read_bytes())
        except OSError as exc:
            print(f"WARNING: cover file not readable ({exc}); listing without cover.")

    result = engine.listings.add_listing(
        args.title,
        args.author,
        args.location,
        args.contact,
        genre=args.genre,
        cover=cover,
    )
    if result.cover_error is not None:
        print(f"WARNING: {result.cover_error}")
    print(f"Added {_render_book(result.book)}")
    return 0


def _cmd_books(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    if args.mine:
        user = engine.identity.require_session()
        books = engine.listings.listings_for_owner(user.id)
    elif args.recent is not None:
        books = engine.listings.recent_listings(args.recent)
    else:
        books = list(engine.listings.listings)
    for book in books:
        print(_render_book(book))
    return 0


def _cmd_search(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    for book in engine.listings.search(args.query):
        print(_render_book(book))
    return 0


def _cmd_toggle(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    engine.listings.toggle_availability(args.book_id)
    book = engine.listings.get_listing(args.book_id)
    if book is not None:
        print(_render_book(book))
    return 0


def _cmd_delete(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    book = engine.listings.delete_listing(args.book_id)
    print(f"Deleted {book.title}.")
    return 0


def _cmd_send(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    message = engine.conversations.send_message(
        args.receiver_id, args.book_id, args.content, is_request=args.request
    )
    print(f"Sent {message.id}.")
    return 0


def _cmd_inbox(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    engine.identity.require_session()
    for conv in engine.conversations.conversations_for_current_user():
        print(_render_conversation(conv))
    return 0


def _cmd_thread(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    user = engine.identity.require_session()
    for msg in engine.conversations.conversation_with(args.partner_id):
        print(_render_message(msg, user.id))
    if args.mark_read:
        engine.conversations.mark_conversation_read(args.partner_id)
    return 0


def _cmd_read(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    engine.conversations.mark_as_read(args.message_id)
    return 0


def _cmd_accept(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    acceptance = engine.conversations.accept_request(args.message_id)
    print(f"Accepted; {acceptance.book_title} is now reserved.")
    return 0


def _cmd_unread(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    print(engine.conversations.unread_count())
    return 0


def _cmd_export(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    result = engine.export_archive(args.path, overwrite=args.overwrite)
    print(f"Exported to {result.archive_path}")
    return 0


def _cmd_import(args: argparse.Namespace, engine: ExchangeEngine) -> int:
    snapshot = engine.import_archive(args.path)
    print(
        f"Imported {len(snapshot.users)} users, {len(snapshot.books)} books, "
        f"{len(snapshot.messages)} messages."
    )
    return 0


_ENGINE_COMMANDS: dict[str, Callable[[argparse.Namespace, ExchangeEngine], int]] = {
    "register": _cmd_register,
    "login": _cmd_login,
    "logout": _cmd_logout,
    "whoami": _cmd_whoami,
    "add": _cmd_add,
    "books": _cmd_books,
    "search": _cmd_search,
    "toggle": _cmd_toggle,
    "delete": _cmd_delete,
    "send": _cmd_send,
    "inbox": _cmd_inbox,
    "thread": _cmd_thread,
    "read": _cmd_read,
    "accept": _cmd_accept,
    "unread": _cmd_unread,
    "export": _cmd_export,
    "import": _cmd_import,
}


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Parameters
    ----------
    argv:
        Optional argument vector. If None, argparse uses sys.argv.

    Returns
    -------
    int
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        paths = resolve_paths(Path(args.data_root) if args.data_root else None)
        settings = load_settings(paths)
        configure_logging(
            args.log_level or settings.log_level,
            log_file=paths.logs_root / "bookswap.log" if args.log_to_file else None,
        )

        if args.command == "init":
            return _cmd_init(args, paths)

        handler = _ENGINE_COMMANDS.get(args.command)
        if handler is None:
            parser.print_help()
            return 0
        engine = open_engine(settings, paths)
        return handler(args, engine)
    except (ExchangeError, SnapshotError, DataRootError, ValueError) as exc:
        print(f"ERROR: {exc}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
