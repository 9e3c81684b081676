"""Track on-chain account addresses on offers and proposals.

Offers and proposals are looked up by their program-derived account address
once the instruction that references them is indexed, and proposals carry the
seller half of the offer natural key.
"""
from copy import deepcopy

from .v1 import schema as v1

UPDATED_AT_FUNCTION = '''
BEGIN
    NEW.updated_at = now();
    RETURN NEW;
END;
'''

def _tables():
    tables = {table['name']: table for table in deepcopy(v1['tables'])}

    offers = tables['offers']
    offers['columns'].insert(3, {'name': 'offer_pda', 'type': 'TEXT'})
    offers['indexes'].append({'name': 'idx_offers_offer_pda', 'columns': ['offer_pda']})
    offers['indexes'].append({'name': 'idx_offers_seller_status', 'columns': ['seller', 'status']})

    proposals = tables['proposals']
    proposals['columns'][3:3] = [
        {'name': 'offer_seller', 'type': 'TEXT'},
        {'name': 'offer_pda', 'type': 'TEXT'},
        {'name': 'proposal_pda', 'type': 'TEXT'},
    ]
    proposals['indexes'] = [
        {'name': 'idx_proposals_buyer', 'columns': ['buyer']},
        {'name': 'idx_proposals_proposal_pda', 'columns': ['proposal_pda']},
        {'name': 'idx_proposals_offer_status', 'columns': ['offer_seller', 'offer_id', 'status']},
        {'name': 'idx_proposals_natural_key',
         'columns': ['offer_seller', 'offer_id', 'buyer', 'proposal_id'], 'unique': True}
    ]

    return list(tables.values())

schema = {
    'version': 2,
    'tables': _tables(),
    'triggers': [
        {
            'name': 'trg_offers_updated_at',
            'table': 'offers',
            'timing': 'BEFORE',
            'event': 'UPDATE',
            'function_name': 'set_updated_at',
            'function_body': UPDATED_AT_FUNCTION
        },
        {
            'name': 'trg_proposals_updated_at',
            'table': 'proposals',
            'timing': 'BEFORE',
            'event': 'UPDATE',
            'function_name': 'set_updated_at',
            'function_body': UPDATED_AT_FUNCTION
        }
    ],
    'seed': v1['seed'],
    'migrations': [
        # Migration SQL from v1 to v2
        '''
        ALTER TABLE offers ADD COLUMN IF NOT EXISTS offer_pda TEXT;
        ALTER TABLE proposals
            ADD COLUMN IF NOT EXISTS offer_seller TEXT,
            ADD COLUMN IF NOT EXISTS offer_pda TEXT,
            ADD COLUMN IF NOT EXISTS proposal_pda TEXT;

        CREATE INDEX IF NOT EXISTS idx_offers_offer_pda ON offers(offer_pda);
        CREATE INDEX IF NOT EXISTS idx_offers_seller_status ON offers(seller, status);
        CREATE INDEX IF NOT EXISTS idx_proposals_proposal_pda ON proposals(proposal_pda);
        CREATE INDEX IF NOT EXISTS idx_proposals_offer_status ON proposals(offer_seller, offer_id, status);
        DROP INDEX IF EXISTS idx_proposals_offer_id;
        DROP INDEX IF EXISTS idx_proposals_status;

        -- Backfill the seller half of the offer key where the offer id names one offer;
        -- ids shared by several sellers stay NULL
        UPDATE proposals p
        SET offer_seller = o.seller
        FROM offers o
        WHERE p.offer_seller IS NULL
        AND o.offer_id = p.offer_id
        AND (SELECT count(*) FROM offers o2 WHERE o2.offer_id = p.offer_id) = 1;

        CREATE UNIQUE INDEX IF NOT EXISTS idx_proposals_natural_key
            ON proposals(offer_seller, offer_id, buyer, proposal_id);
        ''',
        f'''
        CREATE OR REPLACE FUNCTION set_updated_at()
        RETURNS TRIGGER
        AS $${UPDATED_AT_FUNCTION}$$
        LANGUAGE plpgsql;

        DROP TRIGGER IF EXISTS trg_offers_updated_at ON offers;
        CREATE TRIGGER trg_offers_updated_at
            BEFORE UPDATE ON offers
            FOR EACH ROW EXECUTE FUNCTION set_updated_at();

        DROP TRIGGER IF EXISTS trg_proposals_updated_at ON proposals;
        CREATE TRIGGER trg_proposals_updated_at
            BEFORE UPDATE ON proposals
            FOR EACH ROW EXECUTE FUNCTION set_updated_at();
        '''
    ]
}
