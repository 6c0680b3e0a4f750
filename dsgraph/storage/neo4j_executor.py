"""
Neo4j Graph Executor
프로덕션용 실행 백엔드 (async driver).
"""
from typing import Any, Dict, List, Optional
import logging

from neo4j import AsyncGraphDatabase

from dsgraph.storage.graph_executor import GraphExecutor
from dsgraph.storage.query_builder import GraphQuery

logger = logging.getLogger(__name__)

PROBE_QUERY = "RETURN 1 AS ok"


class Neo4jGraphExecutor(GraphExecutor):
    """Neo4j 구현"""

    def __init__(self, uri: str, user: str, password: str, database: Optional[str] = None):
        self._uri = uri
        self._database = database
        self._driver = AsyncGraphDatabase.driver(uri, auth=(user, password))
        logger.info(f"Neo4j driver created: {uri}")

    @property
    def uri(self) -> str:
        return self._uri

    def _session(self):
        if self._database:
            return self._driver.session(database=self._database)
        return self._driver.session()

    async def _run_query(self, text: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        # 세션은 호출 단위로 열고 성공/실패 모두 닫힘
        async with self._session() as session:
            result = await session.run(text, params)
            return await result.data()

    async def verify_connectivity(self) -> None:
        await self._run_query(PROBE_QUERY, {})

    async def run(self, query: GraphQuery) -> List[Dict[str, Any]]:
        return await self._run_query(query.text, query.parameters)

    async def close(self) -> None:
        if self._driver:
            await self._driver.close()
            self._driver = None
