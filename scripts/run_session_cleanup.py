"""Run the scheduled communication-session cleanup once, e.g. from cron."""
import asyncio
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from legalpro.services.sessions import SessionService
from legalpro_lib.database import Database, create_supabase_client
from legalpro_lib.twilio_client import TwilioClient

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)
logger = logging.getLogger(__name__)


async def main():
    service = SessionService(Database(create_supabase_client()), TwilioClient())
    result = await service.scheduled_cleanup()
    logger.info(f"Cleanup finished: {result['stats']}")


if __name__ == "__main__":
    asyncio.run(main())
