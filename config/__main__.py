"""Command line interface for checking configuration loading"""
from . import settings_conf
from pathlib import Path

def main():
    """Display loaded configuration"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings_conf.items():
        print(f"{key}: {value}")

    # Save example configuration file
    examples_dir = Path("examples")
    examples_dir.mkdir(exist_ok=True)

    with open(examples_dir / "settings.conf.example", "w") as f:
        f.write("""[DEFAULT]
# Solana JSON-RPC endpoint and the fair swap program to index
rpc_url = http://127.0.0.1:8899
program_id = GUijjz5VNLUkPSw9KKvH5ntUNoJuSDbWQDXZSrQgx9fW
commitment = confirmed

# Projection database
db_url = postgresql://postgres@localhost:5432/fair_swap

# Poll loop
poll_interval = 2
signature_batch_size = 100

# RPC timeout (seconds) and attempts per request
rpc_timeout = 10
rpc_max_tries = 5

# Checkpoint row key and optional explicit IDL location
indexer_key = fair_swap
idl_path =

log_level = INFO
""")
    print(f"\nWrote {examples_dir / 'settings.conf.example'}")

if __name__ == "__main__":
    main()
