"""MongoDB repository for fetching tax rule configuration."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, MongoClient

from ..utils.config import Config
from ..utils.logging import get_logger
from .documents import tax_rule_from_document
from .errors import PricingError
from .models import TaxRule
from .tax_rules import check_tax_rule

logger = get_logger(__name__)


class TaxRuleRepository:
    def __init__(
        self,
        url: Optional[str] = None,
        db_name: Optional[str] = None,
        collection: Optional[str] = None,
        config: Optional[Config] = None,
    ) -> None:
        config = config or Config(".env")
        self._url = url or config.get("mongo_url")
        self._db = db_name or config.get("mongo_db")
        self._collection = collection or config.get("tax_rule_collection")
        if not self._url:
            raise ValueError("DB_CONNECTION_URL is required")
        self._client: Optional[MongoClient] = None

    def __enter__(self) -> "TaxRuleRepository":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def connect(self) -> None:
        if self._client is None:
            self._client = MongoClient(self._url, serverSelectionTimeoutMS=5000)

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _documents(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        if self._client is None:
            self.connect()
        coll = self._client[self._db][self._collection]
        return list(coll.find(query).sort("_id", ASCENDING))

    def list_active_rules(self) -> List[TaxRule]:
        """Fetch the active tax rules ordered by document id.

        The active flag is read from the parsed document, so string flags
        such as ``"false"`` are honoured. Documents that fail to parse or
        validate are logged and left out.
        """
        rules: List[TaxRule] = []
        for doc in self._documents({}):
            try:
                rule = check_tax_rule(tax_rule_from_document(doc))
            except (PricingError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring tax rule document {doc.get('_id')}: {e}")
                continue
            if rule.active:
                rules.append(rule)
        logger.debug(f"Loaded {len(rules)} active tax rule(s) from {self._db}.{self._collection}")
        return rules
