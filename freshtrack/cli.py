"""CLI entry point for freshtrack."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import FreshtrackConfig, load_config
from .db import InventoryDB
from .exceptions import FreshtrackError
from .expiration import ExpirationCalculator, format_timestamp
from .pantry import Pantry, create_inventory_item
from .ranking import UrgencyRanker
from .receipt import ReceiptImportSession, ReceiptLineParser
from .serialization import item_to_record


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="freshtrack",
        description="Track perishable food and see what to cook before it spoils",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to a TOML config file",
    )
    parser.add_argument(
        "--db", type=str, default=None, help="Override the database path"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # resolve
    resolve_parser = sub.add_parser("resolve", help="Canonicalize ingredient names")
    resolve_parser.add_argument("names", nargs="+")
    resolve_parser.add_argument("--json", action="store_true", help="Output JSON")

    # parse
    parse_parser = sub.add_parser("parse", help="Parse receipt text (stdin if no file)")
    parse_parser.add_argument("file", nargs="?", default=None)
    parse_parser.add_argument("--purchase-date", type=str, default=None)
    parse_parser.add_argument("--json", action="store_true", help="Output JSON")

    # scan
    scan_parser = sub.add_parser("scan", help="OCR receipt photos and parse them")
    scan_parser.add_argument("images", nargs="+")
    scan_parser.add_argument("--purchase-date", type=str, default=None)
    scan_parser.add_argument("--json", action="store_true", help="Output JSON")

    # add
    add_parser = sub.add_parser("add", help="Add an item to the pantry")
    add_parser.add_argument("name")
    add_parser.add_argument("--quantity", "-q", type=float, default=1.0)
    add_parser.add_argument("--unit", "-u", type=str, default="")
    add_parser.add_argument("--purchase-date", type=str, default=None)
    add_parser.add_argument(
        "--expires", type=str, default=None,
        help="Expiration date override (ISO-8601)",
    )

    # import-receipt
    import_parser = sub.add_parser(
        "import-receipt", help="Parse receipt text and add its items to the pantry"
    )
    import_parser.add_argument("file", nargs="?", default=None)
    import_parser.add_argument("--purchase-date", type=str, default=None)

    # list
    list_parser = sub.add_parser("list", help="List pantry items by urgency")
    list_parser.add_argument("--json", action="store_true", help="Output JSON")

    # urgent
    urgent_parser = sub.add_parser("urgent", help="Show the most urgent ingredients")
    urgent_parser.add_argument("--limit", "-n", type=int, default=None)
    urgent_parser.add_argument("--json", action="store_true", help="Output JSON")

    # remove
    remove_parser = sub.add_parser("remove", help="Remove a pantry item")
    remove_parser.add_argument("id")

    # shelf-life
    shelf_parser = sub.add_parser(
        "shelf-life", help="Estimate shelf life for ingredients"
    )
    shelf_parser.add_argument("names", nargs="+")
    shelf_parser.add_argument(
        "--local", action="store_true", help="Use only the built-in table"
    )

    # recipes
    recipes_parser = sub.add_parser("recipes", help="Suggest recipes for expiring items")
    recipes_parser.add_argument("--preferences", type=str, default="")
    recipes_parser.add_argument("--json", action="store_true", help="Output JSON")

    # migrate
    migrate_parser = sub.add_parser(
        "migrate", help="Import a JSON pantry export (legacy shape allowed)"
    )
    migrate_parser.add_argument("file")

    # export
    sub.add_parser("export", help="Print the pantry as JSON")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.db:
        config.database.path = args.db

    try:
        match args.command:
            case "resolve":
                _cmd_resolve(config, args)
            case "parse":
                _cmd_parse(config, args)
            case "scan":
                asyncio.run(_cmd_scan(config, args))
            case "add":
                _cmd_add(config, args)
            case "import-receipt":
                _cmd_import_receipt(config, args)
            case "list":
                _cmd_list(config, args)
            case "urgent":
                _cmd_urgent(config, args)
            case "remove":
                _cmd_remove(config, args)
            case "shelf-life":
                asyncio.run(_cmd_shelf_life(config, args))
            case "recipes":
                asyncio.run(_cmd_recipes(config, args))
            case "migrate":
                _cmd_migrate(config, args)
            case "export":
                _cmd_export(config)
    except FreshtrackError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _read_text(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _calculator(config: FreshtrackConfig) -> ExpirationCalculator:
    return ExpirationCalculator(config.shelf_life_table())


def _line_parser(config: FreshtrackConfig) -> ReceiptLineParser:
    return ReceiptLineParser(resolver=config.name_resolver())


def _load_pantry(config: FreshtrackConfig, db: InventoryDB) -> Pantry:
    return Pantry(db.get_all(), ranker=UrgencyRanker(_calculator(config)))


def _print_lines(lines, as_json: bool) -> None:
    if as_json:
        print(json.dumps([l.to_dict() for l in lines], ensure_ascii=False, indent=2))
        return
    if not lines:
        print("No product lines found.")
        return
    print(f"Parsed {len(lines)} item(s):")
    for l in lines:
        print(
            f"  {l.display_name:<14} {l.quantity:g} {l.unit:<5} "
            f"{l.confidence:.0%}  <- {l.raw_line}"
        )


def _cmd_resolve(config: FreshtrackConfig, args) -> None:
    resolver = config.name_resolver()
    results = [(name, resolver.resolve(name)) for name in args.names]
    if args.json:
        data = [
            {"input": name, "canonicalName": r.canonical_name, "confidence": r.confidence}
            for name, r in results
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return
    for name, r in results:
        print(f"  {name!r:<20} -> {r.canonical_name} ({r.confidence:.2f})")


def _cmd_parse(config: FreshtrackConfig, args) -> None:
    lines = _line_parser(config).parse(_read_text(args.file), args.purchase_date)
    _print_lines(lines, args.json)


async def _cmd_scan(config: FreshtrackConfig, args) -> None:
    from .ocr import create_backend

    print("Reading receipt...", file=sys.stderr)
    try:
        backend = create_backend(config)
        raw_lines = await backend.extract_lines(args.images)
    except (ImportError, ValueError, FileNotFoundError) as e:
        print(f"OCR error: {e}", file=sys.stderr)
        sys.exit(1)
    lines = _line_parser(config).parse("\n".join(raw_lines), args.purchase_date)
    _print_lines(lines, args.json)


def _cmd_add(config: FreshtrackConfig, args) -> None:
    item = create_inventory_item(
        args.name,
        quantity=args.quantity,
        unit=args.unit,
        purchase_date=args.purchase_date,
        expiration_override=args.expires,
        resolver=config.name_resolver(),
        calculator=_calculator(config),
    )
    db = InventoryDB(config.database.path)
    try:
        db.add_items([item])
    finally:
        db.close()
    print(
        f"Added {item.display_name} as {item.canonical_name} "
        f"(expires {format_timestamp(item.effective_expiration)}) [{item.id}]"
    )


def _cmd_import_receipt(config: FreshtrackConfig, args) -> None:
    session = ReceiptImportSession.from_text(
        _read_text(args.file),
        args.purchase_date,
        parser=_line_parser(config),
        calculator=_calculator(config),
    )
    threshold = config.resolver.min_import_confidence
    for index in reversed(range(len(session.lines))):
        line = session.lines[index]
        if line.confidence < threshold:
            print(
                f"  Skipping {line.raw_line!r} (confidence {line.confidence:.2f})",
                file=sys.stderr,
            )
            session.remove(index)

    items = session.commit()
    db = InventoryDB(config.database.path)
    try:
        db.add_items(items)
    finally:
        db.close()
    print(f"Imported {len(items)} item(s).")
    for item in items:
        print(f"  {item.display_name:<14} {item.quantity:g} {item.unit}")


def _cmd_list(config: FreshtrackConfig, args) -> None:
    db = InventoryDB(config.database.path)
    try:
        pantry = _load_pantry(config, db)
    finally:
        db.close()

    rows = pantry.ranked_items()

    if args.json:
        data = []
        for item, ranked in rows:
            record = item_to_record(item)
            record["daysUntilExpiration"] = ranked.days_until_expiration
            record["urgencyScore"] = ranked.urgency_score
            data.append(record)
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    if not rows:
        print("The pantry is empty.")
        return
    print(f"Pantry ({len(rows)} item(s)):")
    for item, ranked in rows:
        days = ranked.days_until_expiration
        status = f"{days}d left" if days >= 0 else f"{-days}d overdue"
        print(
            f"  {item.display_name:<14} {item.quantity:g} {item.unit:<5} "
            f"{status:<12} [{item.id}]"
        )


def _cmd_urgent(config: FreshtrackConfig, args) -> None:
    db = InventoryDB(config.database.path)
    try:
        pantry = _load_pantry(config, db)
    finally:
        db.close()

    limit = args.limit if args.limit is not None else config.ranking.top_n
    ranked = pantry.top_urgent(limit)
    if args.json:
        print(json.dumps([r.to_dict() for r in ranked], ensure_ascii=False, indent=2))
        return
    if not ranked:
        print("The pantry is empty.")
        return
    for r in ranked:
        print(
            f"  {r.display_name:<14} urgency {r.urgency_score:<3} "
            f"{r.days_until_expiration}d"
        )


def _cmd_remove(config: FreshtrackConfig, args) -> None:
    db = InventoryDB(config.database.path)
    try:
        removed = db.delete_item(args.id)
    finally:
        db.close()
    if not removed:
        print(f"No item with id {args.id}", file=sys.stderr)
        sys.exit(1)
    print(f"Removed {args.id}")


async def _cmd_shelf_life(config: FreshtrackConfig, args) -> None:
    from .enrichment import ClaudeShelfLifeLookup, estimate_shelf_lives

    lookup = None
    if not args.local and config.ocr.claude.api_key:
        lookup = ClaudeShelfLifeLookup(
            api_key=config.ocr.claude.api_key,
            model=config.ocr.claude.model,
        )
    estimate = await estimate_shelf_lives(
        [{"name": name} for name in args.names],
        lookup=lookup,
        table=config.shelf_life_table(),
        resolver=config.name_resolver(),
    )
    print(json.dumps(estimate.to_dict(), ensure_ascii=False, indent=2))


async def _cmd_recipes(config: FreshtrackConfig, args) -> None:
    from .recipes import ClaudeRecipeGenerator, suggest_recipes

    db = InventoryDB(config.database.path)
    try:
        pantry = _load_pantry(config, db)
    finally:
        db.close()

    generator = None
    if config.recipes.backend == "claude" and config.recipes.api_key:
        generator = ClaudeRecipeGenerator(
            api_key=config.recipes.api_key,
            model=config.recipes.model,
        )
    plan = await suggest_recipes(
        pantry,
        generator=generator,
        preferences=args.preferences,
        top_n=config.ranking.top_n,
    )

    if args.json:
        print(json.dumps(plan.to_dict(), ensure_ascii=False, indent=2))
        return
    if plan.warning:
        print(f"Note: {plan.warning}", file=sys.stderr)
    for recipe in plan.recipes:
        print(recipe.display())
        print()


def _cmd_migrate(config: FreshtrackConfig, args) -> None:
    try:
        records = json.loads(Path(args.file).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"Not valid JSON: {e}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(records, list):
        print("Expected a JSON list of pantry records", file=sys.stderr)
        sys.exit(1)

    db = InventoryDB(config.database.path)
    try:
        ids = db.import_records(
            records,
            resolver=config.name_resolver(),
            calculator=_calculator(config),
        )
    finally:
        db.close()
    print(f"Imported {len(ids)} of {len(records)} record(s).")


def _cmd_export(config: FreshtrackConfig) -> None:
    db = InventoryDB(config.database.path)
    try:
        records = db.export_records()
    finally:
        db.close()
    print(json.dumps(records, ensure_ascii=False, indent=2))
