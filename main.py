# main.py
import argparse
import asyncio
import json
import logging
import sys
from catlink.config import setup_logging
from catlink.database.database import Database
from catlink.models.order import OrderLine
from catlink.services.category_service import CategoryService
from catlink.services.inventory_order_processor import InventoryOrderProcessor
from catlink.utils.formatters import (
    format_deduction_result, format_preview, format_validation_result,
)

def load_order_lines(path):
    with open(path) as f:
        data = json.load(f)
    return [OrderLine(**line) for line in data]

def build_parser():
    parser = argparse.ArgumentParser(description="Category link and cascade deduction tools")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("validate-links", help="check every category link for cycles")

    chains = commands.add_parser("chains", help="show dependency chains of a category")
    chains.add_argument("category_id")
    chains.add_argument("--max-depth", type=int, default=None)

    link = commands.add_parser("link", help="link two categories")
    link.add_argument("source_id")
    link.add_argument("target_id")
    link.add_argument("--inactive", action="store_true")

    preview = commands.add_parser("preview", help="preview deductions for an order file")
    preview.add_argument("orders")

    process = commands.add_parser("process", help="deduct inventory for an order file")
    process.add_argument("orders")
    process.add_argument("--order-id", default=None)
    return parser

async def run(args) -> int:
    db = Database()
    await db.connect()
    try:
        categories = CategoryService(db)
        processor = InventoryOrderProcessor(db, category_service=categories)

        if args.command == "validate-links":
            result = await categories.validate_all_links()
            print(format_validation_result(result))
            return 0 if result.is_valid else 1

        if args.command == "chains":
            for chain in await categories.get_dependency_chains(args.category_id, args.max_depth):
                print(chain)
            return 0

        if args.command == "link":
            result = await categories.add_category_link(args.source_id, args.target_id, not args.inactive)
            print(format_validation_result(result))
            return 0 if result.is_valid else 1

        if args.command == "preview":
            preview = await processor.preview_category_deductions(load_order_lines(args.orders))
            print(format_preview(preview))
            return 1 if preview.errors else 0

        processed = await processor.process_order_with_category_deduction(
            load_order_lines(args.orders), args.order_id
        )
        print(format_deduction_result(processed.inventory_result))
        return 1 if processed.inventory_result.errors else 0
    finally:
        await db.close()

async def main(argv=None) -> int:
    setup_logging()
    logger = logging.getLogger(__name__)
    args = build_parser().parse_args(argv)
    
    try:
        return await run(args)
    except Exception as e:
        logger.error(f"Command {args.command} failed: {e}", exc_info=True)
        return 2

if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
