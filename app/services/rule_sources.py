"""
折扣规则来源
折扣引擎只接收规则快照，规则从哪里来由 RuleSource 决定
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List, Optional

from app.core import database
from app.core.exceptions import RuleSourceError
from app.repositories.discount_rule_repository import DiscountRuleRepository

logger = logging.getLogger(__name__)


class RuleSource(ABC):
    """规则来源抽象"""

    @abstractmethod
    async def fetch_rules(self) -> List[Any]:
        """返回规则快照 (规则模型或原始记录)"""


class StaticRuleSource(RuleSource):
    """内存规则快照，主要用于测试和离线计算"""

    def __init__(self, rules: Iterable[Any] = ()):
        self._rules = list(rules)

    def replace(self, rules: Iterable[Any]) -> None:
        self._rules = list(rules)

    async def fetch_rules(self) -> List[Any]:
        # 返回副本，调用方修改列表不影响快照
        return list(self._rules)


class RepositoryRuleSource(RuleSource):
    """
    从数据库读取规则

    返回原始记录而非模型，配置不完整的规则交给引擎跳过并记录，
    避免一条坏数据让整批规则不可用
    """

    def __init__(self, session_factory: Optional[Callable] = None, active_only: bool = True):
        self.session_factory = session_factory
        self.active_only = active_only

    def _get_session_factory(self) -> Callable:
        factory = self.session_factory or database.async_session_maker
        if factory is None:
            raise RuleSourceError("数据库未初始化，无法读取折扣规则")
        return factory

    async def fetch_rules(self) -> List[Any]:
        factory = self._get_session_factory()
        async with factory() as session:
            repo = DiscountRuleRepository(session)
            if self.active_only:
                db_rules = await repo.get_active_rules()
            else:
                db_rules = await repo.get_all_rules()
            records = [repo.to_record(db_rule) for db_rule in db_rules]

        logger.debug(f"从数据库读取折扣规则 {len(records)} 条")
        return records
