"""Tests for IDL loading."""

import json

import pytest

from indexer.idl import (
    BUNDLED_IDL, IdlError, IdlNotFoundError, camel_to_snake, candidate_paths, load_idl,
    parse_idl, sighash
)

LEGACY_IDL = {
    "version": "0.1.0",
    "name": "fair_swap",
    "instructions": [
        {
            "name": "initializeOffer",
            "accounts": [{"name": "offer", "isMut": True, "isSigner": False}],
            "args": [
                {"name": "offerId", "type": "u64"},
                {"name": "tokenMintB", "type": "publicKey"},
                {"name": "allowAlternatives", "type": "bool"}
            ]
        },
        {"name": "cancelOffer", "accounts": [], "args": []}
    ],
    "accounts": [{"name": "Offer", "type": {"kind": "struct", "fields": []}}]
}

def test_bundled_idl_discriminators_match_sighash(idl):
    """Explicit discriminators agree with the derived ones."""
    for name in ('initialize_offer', 'cancel_offer', 'execute_swap',
                 'submit_proposal', 'accept_proposal', 'withdraw_proposal'):
        ix = idl.instruction(sighash('global', name))
        assert ix is not None, name
        assert ix.name == name
    assert idl.account_discriminator('Offer') == sighash('account', 'Offer')

def test_legacy_idl_is_normalized():
    idl = parse_idl(LEGACY_IDL)
    ix = idl.instruction(sighash('global', 'initialize_offer'))
    assert ix.name == 'initialize_offer'
    assert ix.args == [('offer_id', 'u64'), ('token_mint_b', 'pubkey'), ('allow_alternatives', 'bool')]
    assert idl.instruction(sighash('global', 'cancel_offer')).args == []
    assert idl.account_discriminator('Offer') == sighash('account', 'Offer')
    assert idl.name == 'fair_swap'

def test_camel_to_snake():
    assert camel_to_snake('withdrawProposal') == 'withdraw_proposal'
    assert camel_to_snake('execute_swap') == 'execute_swap'

def test_parse_idl_without_instructions():
    with pytest.raises(IdlError):
        parse_idl({"name": "fair_swap"})

def test_parse_idl_malformed_entry():
    with pytest.raises(IdlError):
        parse_idl({"instructions": [{"args": []}]})

def test_load_idl_prefers_explicit_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / 'custom.json'
    path.write_text(json.dumps(LEGACY_IDL))

    idl = load_idl(path)
    assert idl.source == path

def test_load_idl_searches_build_output(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = tmp_path / 'target' / 'idl'
    target.mkdir(parents=True)
    (target / 'fair_swap.json').write_text(json.dumps(LEGACY_IDL))

    idl = load_idl()
    assert idl.source == target / 'fair_swap.json'

def test_load_idl_falls_back_to_bundled_copy(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    idl = load_idl(tmp_path / 'missing.json')
    assert idl.source == BUNDLED_IDL

def test_load_idl_not_found(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr('indexer.idl.BUNDLED_IDL', tmp_path / 'nowhere.json')
    with pytest.raises(IdlNotFoundError):
        load_idl()

def test_load_idl_unparsable(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / 'broken.json'
    path.write_text('{not json')
    with pytest.raises(IdlError):
        load_idl(path)

def test_candidate_paths_order(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    paths = candidate_paths('explicit.json')
    assert paths[0].name == 'explicit.json'
    assert paths[1] == tmp_path / 'target' / 'idl' / 'fair_swap.json'
    assert paths[-1] == BUNDLED_IDL
