"""Command line interface for checking connectivity to the Solana node"""
from config import settings_conf
from . import SolanaRPC, NodeConnectionError, NodeAuthError, SolanaRPCError
from .reader import ChainReader

def check_rpc():
    """Exercise the calls the indexer depends on"""
    client = SolanaRPC(
        settings_conf['rpc_url'],
        timeout=settings_conf['rpc_timeout'],
        max_tries=1
    )
    reader = ChainReader(client, settings_conf['program_id'], settings_conf['commitment'])

    try:
        print(f"\nChecking {settings_conf['rpc_url']}:")
        print("-" * 50)

        print("1. getVersion:")
        version = client.getVersion()
        print(f"  Success! solana-core {version.get('solana-core')}")

        print("\n2. getSlot:")
        print(f"  Success! Current slot: {reader.get_current_slot()}")

        print("\n3. getSignaturesForAddress (program):")
        signatures = client.getSignaturesForAddress(
            settings_conf['program_id'], {'limit': 5, 'commitment': settings_conf['commitment']}
        )
        print(f"  Success! {len(signatures)} recent signatures")
        for sig in signatures:
            status = "failed" if sig.get('err') else "ok"
            print(f"    {sig['signature'][:16]}... slot={sig['slot']} {status}")

        print("\n4. getAccountInfo (program):")
        data = reader.get_account_data(settings_conf['program_id'])
        print(f"  Success! Program account {'found' if data is not None else 'not found'}")

    except NodeConnectionError as e:
        print("\nFailed to connect to Solana node:")
        print(f"  {str(e)}")

    except NodeAuthError as e:
        print("\nAuthentication failed:")
        print(f"  {str(e)}")

    except SolanaRPCError as e:
        print(f"\nSolana Error [{e.code}] in {e.method}:")
        print(f"  {str(e)}")

if __name__ == "__main__":
    check_rpc()
