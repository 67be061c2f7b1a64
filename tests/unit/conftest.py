import pytest
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def mock_ledger_repo():
    """Ledger repository assigning ids in append order; appended entries kept on .appended"""
    repo = MagicMock()
    repo.appended = []

    async def append(entry):
        entry.id = len(repo.appended) + 1
        repo.appended.append(entry)
        return entry

    repo.append = AsyncMock(side_effect=append)
    return repo
