import asyncio
import signal
import logging

from config import settings_conf
from database import init_db, get_pool, close as db_close
from indexer import create_indexer, load_idl, IdlError
from projections import CheckpointStore, ProjectionStore
from rpc import SolanaRPC
from rpc.reader import ChainReader

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings_conf['log_level'], logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

async def main():
    """Main application entry point."""
    # Without the IDL nothing can be decoded, so this is the one fatal check
    try:
        idl = load_idl(settings_conf['idl_path'])
    except IdlError as e:
        logger.critical(f"Cannot start indexer: {e}")
        raise

    try:
        # Initialize database
        logger.info("Initializing database...")
        await init_db(settings_conf['db_url'])
        pool = await get_pool()

        client = SolanaRPC(
            settings_conf['rpc_url'],
            timeout=settings_conf['rpc_timeout'],
            max_tries=settings_conf['rpc_max_tries']
        )
        reader = ChainReader(client, settings_conf['program_id'], settings_conf['commitment'])

        indexer = create_indexer(
            reader,
            ProjectionStore(pool),
            CheckpointStore(pool, key=settings_conf['indexer_key']),
            idl=idl,
            poll_interval=settings_conf['poll_interval'],
            batch_size=settings_conf['signature_batch_size']
        )

        # Register shutdown handlers
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, indexer.stop)

        await indexer.run()

    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise

    finally:
        await db_close()  # Close database connections

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
