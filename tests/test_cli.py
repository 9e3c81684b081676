"""Tests for the indexer operations CLI."""

import pytest

from indexer import create_indexer
from indexer.__main__ import build_parser, list_offers, reset_slot
from conftest import A, MemoryCheckpoint, initialize_offer

@pytest.mark.asyncio
async def test_reset_slot_to_absolute_value(capsys):
    checkpoint = MemoryCheckpoint(slot=500)

    assert await reset_slot(checkpoint, slot=120) == 120
    assert checkpoint.slot == 120
    assert "500 -> 120" in capsys.readouterr().out

@pytest.mark.asyncio
async def test_reset_slot_backwards():
    checkpoint = MemoryCheckpoint(slot=500)
    assert await reset_slot(checkpoint, back=100) == 400

@pytest.mark.asyncio
async def test_reset_slot_rejects_negative():
    checkpoint = MemoryCheckpoint(slot=50)
    with pytest.raises(ValueError):
        await reset_slot(checkpoint, back=100)
    assert checkpoint.history == []

def test_reset_slot_requires_a_target():
    parser = build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(['reset-slot'])
    args = parser.parse_args(['reset-slot', '--back', '10'])
    assert (args.command, args.back, args.slot) == ('reset-slot', 10, None)

@pytest.mark.asyncio
async def test_list_offers(store, idl, chain, capsys):
    indexer = create_indexer(chain, store, MemoryCheckpoint(), idl=idl)
    chain.add_transaction('sig-offer', 10, [initialize_offer()])
    await indexer.poll_once()

    await list_offers(store, seller=A.SELLER, status='active')

    out = capsys.readouterr().out
    assert "1 offer(s)" in out
    assert "[active]" in out
