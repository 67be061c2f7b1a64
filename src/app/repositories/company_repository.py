"""Company Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.company import Company
from src.domain.group_setting import GroupSetting


class CompanyRepository(ABC):
    """Repository interface for companies and their settings groups"""

    @abstractmethod
    async def get_by_id(self, company_id: int) -> Optional[Company]:
        pass

    @abstractmethod
    async def create(self, company: Company) -> Company:
        pass

    @abstractmethod
    async def get_group_setting(self, group_settings_id: int) -> Optional[GroupSetting]:
        """
        Retrieve a settings group

        Args:
            group_settings_id: GroupSetting ID

        Returns:
            GroupSetting if found, None otherwise
        """
        pass
