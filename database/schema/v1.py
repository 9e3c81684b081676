"""Initial projection tables: offers, proposals, swaps and indexer state."""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'offers',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'offer_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'seller', 'type': 'TEXT', 'nullable': False},
                {'name': 'token_mint_a', 'type': 'TEXT', 'nullable': False},
                {'name': 'token_amount_a', 'type': 'TEXT', 'nullable': False},
                {'name': 'token_mint_b', 'type': 'TEXT', 'nullable': False},
                {'name': 'token_amount_b', 'type': 'TEXT', 'nullable': False},
                {'name': 'allow_alternatives', 'type': 'BOOL', 'default': 'false'},
                {'name': 'status', 'type': 'TEXT', 'default': "'active'", 'nullable': False,
                 'check': "status IN ('active', 'cancelled', 'completed')"},
                {'name': 'signature', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'slot', 'type': 'INT8', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_offers_seller_offer_id', 'columns': ['seller', 'offer_id'], 'unique': True},
                {'name': 'idx_offers_status', 'columns': ['status']},
                {'name': 'idx_offers_token_mint_a', 'columns': ['token_mint_a']},
                {'name': 'idx_offers_token_mint_b', 'columns': ['token_mint_b']}
            ]
        },
        {
            'name': 'proposals',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'proposal_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'buyer', 'type': 'TEXT', 'nullable': False},
                {'name': 'offer_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'proposed_mint', 'type': 'TEXT', 'nullable': False},
                {'name': 'proposed_amount', 'type': 'TEXT', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'default': "'pending'", 'nullable': False,
                 'check': "status IN ('pending', 'accepted', 'withdrawn')"},
                {'name': 'signature', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'slot', 'type': 'INT8', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_proposals_buyer', 'columns': ['buyer']},
                {'name': 'idx_proposals_offer_id', 'columns': ['offer_id']},
                {'name': 'idx_proposals_status', 'columns': ['status']}
            ]
        },
        {
            'name': 'swaps',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'offer_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'proposal_id', 'type': 'TEXT'},
                {'name': 'buyer', 'type': 'TEXT', 'nullable': False},
                {'name': 'seller', 'type': 'TEXT', 'nullable': False},
                {'name': 'token_a_mint', 'type': 'TEXT', 'nullable': False},
                {'name': 'token_a_amount', 'type': 'TEXT', 'nullable': False},
                {'name': 'token_b_mint', 'type': 'TEXT', 'nullable': False},
                {'name': 'token_b_amount', 'type': 'TEXT', 'nullable': False},
                {'name': 'signature', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'slot', 'type': 'INT8', 'nullable': False},
                {'name': 'executed_at', 'type': 'TIMESTAMPTZ', 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_swaps_buyer', 'columns': ['buyer']},
                {'name': 'idx_swaps_seller', 'columns': ['seller']},
                {'name': 'idx_swaps_offer_id', 'columns': ['offer_id']},
                {'name': 'idx_swaps_executed_at', 'columns': ['executed_at']}
            ]
        },
        {
            'name': 'indexer_state',
            'columns': [
                {'name': 'key', 'type': 'TEXT', 'primary_key': True},
                {'name': 'last_processed_slot', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'default': 'now()'}
            ]
        }
    ],
    'seed': [
        "INSERT INTO indexer_state (key, last_processed_slot) VALUES ('fair_swap', 0) ON CONFLICT (key) DO NOTHING"
    ],
    'migrations': []
}
