"""
Category Repository

Registry of ticket categories (ticket_categories table): default priority,
default tags, auto-assignment target and SLA thresholds.

Exactly one category may be the default. Promotion goes through the
`set_default_ticket_category` Postgres function, which clears the previous
default and sets the new one in a single transaction.
"""
from __future__ import annotations

from typing import List, Optional, Dict, Any, Union

from pydantic import ValidationError as PydanticValidationError

from ticketdesk.config import get_settings
from ticketdesk.exceptions import NotFound, ValidationError
from ticketdesk.models.schemas import Category
from ticketdesk.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

SET_DEFAULT_RPC = "set_default_ticket_category"


class CategoryRepository:
    """Repository for ticket_categories table operations."""

    def __init__(self, supabase_client=None) -> None:
        if supabase_client is None:
            from supabase import create_client  # Lazy import for tests

            self.client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key
            )
        else:
            self.client = supabase_client

        self.table_name = "ticket_categories"
        logger.info("CategoryRepository initialized for table: %s", self.table_name)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _serialize(category: Category) -> Dict[str, Any]:
        """Flatten SLA thresholds into columns; is_default is owned by set_default."""
        data = category.model_dump(mode="json", exclude={"sla", "is_default"})
        data["sla_response_hours"] = category.sla.response_hours
        data["sla_resolution_hours"] = category.sla.resolution_hours
        return data

    @staticmethod
    def _deserialize(row: Dict[str, Any]) -> Category:
        row = dict(row)
        sla = {}
        if "sla_response_hours" in row:
            sla["response_hours"] = row.pop("sla_response_hours")
        if "sla_resolution_hours" in row:
            sla["resolution_hours"] = row.pop("sla_resolution_hours")
        if sla:
            row["sla"] = sla
        row["default_tags"] = row.get("default_tags") or []
        return Category.model_validate(row)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    def get(self, name: str) -> Category:
        """
        Fetch a category by name

        Raises:
            NotFound: Unknown category
        """
        try:
            response = self.client.table(self.table_name) \
                .select("*") \
                .eq("name", name) \
                .execute()
        except Exception as exc:
            logger.error("Failed to fetch category %s: %s", name, exc)
            raise

        if not response.data:
            raise NotFound("Category", name)
        return self._deserialize(response.data[0])

    def list(self, active_only: bool = True) -> List[Category]:
        """List categories ordered by name."""
        try:
            query = self.client.table(self.table_name).select("*")
            if active_only:
                query = query.eq("is_active", True)

            response = query.order("name").execute()
            return [self._deserialize(row) for row in response.data or []]

        except Exception as exc:
            logger.error("Failed to list categories: %s", exc)
            raise

    def get_default(self) -> Optional[Category]:
        """Return the default category, None when no default is configured."""
        try:
            response = self.client.table(self.table_name) \
                .select("*") \
                .eq("is_default", True) \
                .limit(1) \
                .execute()
        except Exception as exc:
            logger.error("Failed to fetch default category: %s", exc)
            raise

        if not response.data:
            return None
        return self._deserialize(response.data[0])

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------
    def upsert(self, category: Union[Category, Dict[str, Any]]) -> Category:
        """
        Insert or update a category keyed on name.

        Args:
            category: Category model or raw mapping

        Raises:
            ValidationError: Invalid priority or other field, nothing written
        """
        if not isinstance(category, Category):
            try:
                category = Category.model_validate(category)
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid category: {exc}") from exc

        try:
            response = self.client.table(self.table_name) \
                .upsert(self._serialize(category), on_conflict="name") \
                .execute()

            if not response.data:
                raise ValueError("Supabase upsert returned no data")

            saved = self._deserialize(response.data[0])
            logger.info("Upserted category: %s", saved.name)

        except Exception as exc:
            logger.error("Failed to upsert category %s: %s", category.name, exc)
            raise

        if category.is_default:
            return self.set_default(category.name)
        return saved

    def set_default(self, name: str) -> Category:
        """
        Make a category the single default, unsetting the previous one.

        Raises:
            NotFound: Unknown category
        """
        try:
            response = self.client.rpc(SET_DEFAULT_RPC, {"p_name": name}).execute()
        except Exception as exc:
            logger.error("Failed to set default category %s: %s", name, exc)
            raise

        rows = response.data
        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            raise NotFound("Category", name)

        logger.info("Default category is now: %s", name)
        return self._deserialize(rows[0])
