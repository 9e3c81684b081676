"""Command line interface for inspecting and operating the indexer

Usage:
    python -m indexer status
    python -m indexer reset-slot --slot 250000000
    python -m indexer reset-slot --back 5000
    python -m indexer offers [--seller ADDRESS] [--status active]
    python -m indexer swaps [--limit 20]
"""
import argparse
import asyncio

from config import settings_conf
from database import init_db, close as db_close
from projections import CheckpointStore, OfferStatus, ProjectionStore
from rpc import SolanaRPC, RPCError
from rpc.reader import ChainReader

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='python -m indexer', description=__doc__.splitlines()[0])
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('status', help='Show checkpoint, chain slot and row counts')

    reset = commands.add_parser('reset-slot', help='Rewind the checkpoint to re-scan history')
    target = reset.add_mutually_exclusive_group(required=True)
    target.add_argument('--slot', type=int, help='Set the checkpoint to this slot')
    target.add_argument('--back', type=int, help='Move the checkpoint back by this many slots')

    offers = commands.add_parser('offers', help='List indexed offers')
    offers.add_argument('--seller', help='Only offers by this seller')
    offers.add_argument('--status', choices=[status.value for status in OfferStatus])
    offers.add_argument('--limit', type=int, default=20)

    swaps = commands.add_parser('swaps', help='List recent swaps')
    swaps.add_argument('--limit', type=int, default=20)

    return parser

async def show_status(checkpoint: CheckpointStore, store: ProjectionStore) -> None:
    """Print checkpoint, chain position and projection row counts"""
    last = await checkpoint.get_last_processed_slot()

    print("\nIndexer Status:")
    print("-" * 50)
    print(f"Program: {settings_conf['program_id']}")
    print(f"Checkpoint ({checkpoint.key}): {last}")

    client = SolanaRPC(settings_conf['rpc_url'], timeout=settings_conf['rpc_timeout'], max_tries=1)
    reader = ChainReader(client, settings_conf['program_id'], settings_conf['commitment'])
    try:
        current = reader.get_current_slot()
        print(f"Chain slot: {current} ({max(current - last, 0)} behind)")
    except RPCError as e:
        print(f"Chain slot: unavailable ({e})")

    async with store.session() as session:
        offer_counts = await session.offers.count_by_status()
        proposal_counts = await session.proposals.count_by_status()
        swap_count = await session.swaps.count()

    print("\nOffers:")
    for status in OfferStatus:
        print(f"  {status.value}: {offer_counts.get(status.value, 0)}")
    print("Proposals:")
    for status, count in sorted(proposal_counts.items()):
        print(f"  {status}: {count}")
    print(f"Swaps: {swap_count}")

async def reset_slot(checkpoint: CheckpointStore, slot: int = None, back: int = None) -> int:
    """Rewind the checkpoint. Re-processing is idempotent, so rows are not duplicated.

    Returns:
        The new checkpoint
    """
    current = await checkpoint.get_last_processed_slot()
    new_slot = slot if slot is not None else current - back
    if new_slot < 0:
        raise ValueError(f"Checkpoint cannot be negative (got {new_slot})")

    await checkpoint.set_last_processed_slot(new_slot)
    print(f"Checkpoint {checkpoint.key}: {current} -> {new_slot}")
    return new_slot

async def list_offers(store: ProjectionStore, seller=None, status=None, limit: int = 20) -> None:
    async with store.session() as session:
        offers = await session.offers.list(
            seller=seller,
            status=OfferStatus(status) if status else None,
            limit=limit
        )

    print(f"\n{len(offers)} offer(s):")
    print("-" * 50)
    for offer in offers:
        print(
            f"{offer.seller[:8]}.../{offer.offer_id} [{offer.status.value}] "
            f"{offer.token_amount_a} {offer.token_mint_a[:8]}... for "
            f"{offer.token_amount_b} {offer.token_mint_b[:8]}... slot={offer.slot}"
        )

async def list_swaps(store: ProjectionStore, limit: int = 20) -> None:
    async with store.session() as session:
        swaps = await session.swaps.list_recent(limit=limit)

    print(f"\n{len(swaps)} swap(s):")
    print("-" * 50)
    for swap in swaps:
        via = f" via proposal {swap.proposal_id}" if swap.proposal_id else ""
        print(
            f"offer {swap.offer_id}{via}: {swap.seller[:8]}... -> {swap.buyer[:8]}... "
            f"{swap.token_a_amount} / {swap.token_b_amount} slot={swap.slot} "
            f"sig={swap.signature[:16]}..."
        )

async def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    await init_db(settings_conf['db_url'])
    try:
        checkpoint = CheckpointStore(key=settings_conf['indexer_key'])
        store = ProjectionStore()

        if args.command == 'status':
            await show_status(checkpoint, store)
        elif args.command == 'reset-slot':
            await reset_slot(checkpoint, slot=args.slot, back=args.back)
        elif args.command == 'offers':
            await list_offers(store, seller=args.seller, status=args.status, limit=args.limit)
        elif args.command == 'swaps':
            await list_swaps(store, limit=args.limit)
    finally:
        await db_close()

if __name__ == "__main__":
    asyncio.run(main())
