from abc import ABC, abstractmethod


class AsyncModule(ABC):
    """Base class for runnable modules: initialize, validate, execute, teardown.

    ``teardown`` always runs, even when an earlier phase raised.
    """

    async def initialize(self) -> None:
        """Async setup. Override as needed."""

    async def validate(self) -> None:
        """Async precondition checks. Override as needed."""

    @abstractmethod
    async def execute(self) -> int:
        """Module logic. Must return an exit code."""
        ...

    async def teardown(self) -> None:
        """Async cleanup. Override as needed."""

    async def run(self) -> int:
        try:
            await self.initialize()
            await self.validate()
            return await self.execute()
        finally:
            await self.teardown()
