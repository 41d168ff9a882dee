"""Seed script to populate the local dev database with a small catalog.

Usage:
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate --force
    PYTHONPATH=backend/src python backend/scripts/seed_data.py clear
"""

import argparse
import asyncio

from core.config import get_settings
from db.primary_store import SqlRecordStore
from db.session import create_engine
from db.stores import EntityKind
from db.volatile_store import VolatileStore
from services.discount_service import create_discount
from services.repository import FallbackRepository
from services.user_service import ensure_default_admin

SEED_KINDS = (EntityKind.SECTION, EntityKind.PRODUCT, EntityKind.DISCOUNT)

SECTIONS = [
    {'id': 'mugs', 'name': 'Mugs'},
    {'id': 'shirts', 'name': 'Shirts'},
    {'id': 'posters', 'name': 'Posters'},
]

PRODUCTS = [
    {'id': 'mug-classic', 'name': 'Classic mug', 'price': 12.0, 'section_id': 'mugs'},
    {'id': 'mug-travel', 'name': 'Travel mug', 'price': 18.5, 'section_id': 'mugs'},
    {'id': 'tee-basic', 'name': 'Basic tee', 'price': 20.0, 'section_id': 'shirts'},
    {'id': 'tee-premium', 'name': 'Premium tee', 'price': 32.0, 'section_id': 'shirts'},
    {'id': 'poster-a3', 'name': 'A3 poster', 'price': 15.0, 'section_id': 'posters'},
]

DISCOUNTS = [
    {'name': 'Mug week', 'percent': 15, 'active': True, 'section_ids': ['mugs']},
    {'name': 'Poster clearance', 'percent': 40, 'active': False, 'product_ids': ['poster-a3']},
]


async def clear_data(store: SqlRecordStore) -> None:
    """Delete every seeded kind."""
    for kind in SEED_KINDS:
        records = await store.list(kind)
        for record in records:
            await store.delete(kind, record['id'])
        print(f'  Deleted {len(records)} {kind.value}')


async def populate(force: bool = False) -> None:
    """Populate the database with seed data."""
    settings = get_settings()
    store = SqlRecordStore(create_engine(settings), timeout=settings.primary_store_timeout)
    # Seeding must reach the real database, so the fallback tier stays off
    repo = FallbackRepository(store, VolatileStore(enabled=False))
    try:
        existing = sum([len(await store.list(kind)) for kind in SEED_KINDS])
        if existing:
            if not force:
                print(
                    f'Data already exists ({existing} records). '
                    f'Use --force to clear and re-seed.'
                )
                return
            print('Existing data found, clearing first (--force)...')
            await clear_data(store)

        print('Populating seed data...')
        for section in SECTIONS:
            await repo.create(EntityKind.SECTION, section)
        for product in PRODUCTS:
            await repo.create(EntityKind.PRODUCT, product)
        for discount in DISCOUNTS:
            await create_discount(repo, discount)
        admin = await ensure_default_admin(
            repo, settings.bootstrap_admin_email, settings.bootstrap_admin_password,
        )
        if admin is not None:
            print(f'  Created admin: {admin["email"]}')
        print(
            f'  Created {len(SECTIONS)} sections, {len(PRODUCTS)} products, '
            f'{len(DISCOUNTS)} discounts'
        )
        print('Seed data created successfully.')
    finally:
        await store.close()


async def clear() -> None:
    """Clear all seeded data."""
    settings = get_settings()
    store = SqlRecordStore(create_engine(settings), timeout=settings.primary_store_timeout)
    try:
        await clear_data(store)
        print('Clear complete.')
    finally:
        await store.close()


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    if settings.is_production:
        print(
            "ERROR: Seed script refuses to run in production.\n"
            "It modifies data directly and must only run against a local dev database."
        )
        raise SystemExit(1)

    parser = argparse.ArgumentParser(description='Seed the dev database with a sample catalog.')
    subparsers = parser.add_subparsers(dest='command', required=True)

    populate_parser = subparsers.add_parser('populate', help='Populate database with sample data')
    populate_parser.add_argument(
        '--force', action='store_true',
        help='Clear existing data before populating',
    )

    subparsers.add_parser('clear', help='Remove seeded sections, products and discounts')

    args = parser.parse_args()

    if args.command == 'populate':
        asyncio.run(populate(force=args.force))
    elif args.command == 'clear':
        asyncio.run(clear())


if __name__ == '__main__':
    main()
