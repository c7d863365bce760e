import asyncio
import logging
import sys
from typing import Optional

from leaderboard.config import Config
from leaderboard.database.database import Database
from leaderboard.server.acceptor import SessionAcceptor
from leaderboard.server.registry import SessionRegistry
from leaderboard.server.shutdown import ShutdownCoordinator
from leaderboard.services.leaderboard import LeaderboardService
from leaderboard.utils.leaderboard_exceptions import StartupError
from leaderboard.utils.logger import setup_logger

class LeaderboardServer:
    """Wires the database, gateway, acceptor and shutdown coordinator together."""

    def __init__(self, config: Config):
        self.config = config
        self.logger = setup_logger('leaderboard', config)
        self.db = Database(config)
        self.registry = SessionRegistry()
        self.gateway: Optional[LeaderboardService] = None
        self.acceptor: Optional[SessionAcceptor] = None
        self.coordinator: Optional[ShutdownCoordinator] = None

    async def start(self):
        """Initialize storage and bind the listener"""
        self.logger.info("Setting up SSH leaderboard...")

        await self.db.initialize()
        self.gateway = LeaderboardService.from_config(self.db, self.config)

        self.acceptor = SessionAcceptor(self.config, self.gateway, self.registry)
        await self.acceptor.start()

        self.coordinator = ShutdownCoordinator(self.registry, self.acceptor, timeout=self.config.shutdown_timeout)
        self.coordinator.install_signal_handlers()

        self.logger.info("SSH leaderboard setup complete!")

    async def serve(self) -> bool:
        """Serve until a termination signal arrives, then drain"""
        try:
            return await self.coordinator.run()
        finally:
            self.coordinator.remove_signal_handlers()

    async def close(self):
        """Cleanup when the server is shutting down"""
        self.logger.info("Shutting down SSH leaderboard...")
        await self.db.close()

async def main(config: Optional[Config] = None) -> int:
    """Main entry point"""
    try:
        config = config or Config.from_env()
        config.validate()
    except ValueError as e:
        logging.basicConfig()
        logging.getLogger('leaderboard').error(f"Invalid configuration: {e}")
        return 1

    server = LeaderboardServer(config)
    try:
        await server.start()
    except StartupError as e:
        server.logger.critical(f"{e.kind}: {e}")
        await server.close()
        return 1

    try:
        drained = await server.serve()
        if not drained:
            server.logger.warning("Some sessions were force-closed during shutdown")
    finally:
        await server.close()
    return 0

def run():
    sys.exit(asyncio.run(main()))

if __name__ == "__main__":
    run()
