from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from finance_planner import models
from finance_planner.default_categories import DEFAULT_CATEGORIES, DefaultCategory
from finance_planner.errors import ConflictError, InvalidCategoryError, NotFoundError, OwnershipError

logger = logging.getLogger(__name__)


class CategoryService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_all(self, *, user_id: int, parent_id: Optional[int] = None) -> list[models.Category]:
        q = self.db.query(models.Category).filter(models.Category.user_id == user_id)
        if parent_id is not None:
            q = q.filter(models.Category.parent_id == parent_id)
        return q.order_by(models.Category.sort_order, models.Category.id).all()

    def get_by_id(self, user_id: int, category_id: int) -> models.Category:
        row = (
            self.db.query(models.Category)
            .filter(models.Category.user_id == user_id, models.Category.id == category_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Category", category_id)
        return row

    def create(self, payload: dict, *, user_id: int) -> models.Category:
        payload = dict(payload)
        payload["user_id"] = user_id
        parent_id = payload.get("parent_id")
        if parent_id is not None:
            self._check_parent(user_id, parent_id)
        self._check_name_free(user_id, payload.get("name"), parent_id)
        row = models.Category(**payload)
        try:
            self.db.add(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return row

    def update(self, row: models.Category, patch: dict) -> models.Category:
        if not patch:
            return row
        if "parent_id" in patch and patch["parent_id"] is not None:
            parent = self._check_parent(row.user_id, patch["parent_id"])
            # walking up from the new parent must never reach this row
            node: Optional[models.Category] = parent
            while node is not None:
                if node.id == row.id:
                    raise InvalidCategoryError("Category cannot be moved under itself or its descendants")
                node = node.parent
        if "name" in patch or "parent_id" in patch:
            self._check_name_free(
                row.user_id,
                patch.get("name", row.name),
                patch.get("parent_id", row.parent_id),
                exclude_id=row.id,
            )
        try:
            for key, value in patch.items():
                setattr(row, key, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return row

    def delete(self, row: models.Category) -> None:
        # children go with the parent (ON DELETE CASCADE)
        self.db.delete(row)
        self.db.commit()

    def _check_parent(self, user_id: int, parent_id: int) -> models.Category:
        parent = self.db.get(models.Category, parent_id)
        if parent is None:
            raise NotFoundError("Category", parent_id)
        if parent.user_id != user_id:
            raise OwnershipError(f"Category {parent_id} belongs to another user")
        return parent

    def _check_name_free(
        self, user_id: int, name: Optional[str], parent_id: Optional[int], *, exclude_id: Optional[int] = None
    ) -> None:
        q = self.db.query(models.Category.id).filter(
            models.Category.user_id == user_id,
            models.Category.name == name,
            models.Category.parent_id.is_(None) if parent_id is None else models.Category.parent_id == parent_id,
        )
        if exclude_id is not None:
            q = q.filter(models.Category.id != exclude_id)
        if q.first() is not None:
            raise ConflictError("Category name already exists at this level")

    # ---- Helpers ---------------------------------------------------------
    def seed_defaults(
        self,
        *,
        user_id: int,
        defaults: Iterable[DefaultCategory] = DEFAULT_CATEGORIES,
        commit: bool = True,
    ) -> list[models.Category]:
        """Create the default category tree for a user.

        Idempotent by (user, name, parent); returns only newly created rows.
        """
        created: list[models.Category] = []

        def _get_or_create(name: str, icon: str, color: str, order: int, parent_id: Optional[int]) -> models.Category:
            row = (
                self.db.query(models.Category)
                .filter(
                    models.Category.user_id == user_id,
                    models.Category.name == name,
                    models.Category.parent_id.is_(None) if parent_id is None else models.Category.parent_id == parent_id,
                )
                .first()
            )
            if row:
                return row
            row = models.Category(
                user_id=user_id, name=name, icon=icon, color=color, sort_order=order, parent_id=parent_id
            )
            self.db.add(row)
            self.db.flush()
            created.append(row)
            return row

        for order, (name, icon, color, children) in enumerate(defaults):
            parent = _get_or_create(name, icon, color, order, None)
            for child_order, (child_name, child_icon, child_color) in enumerate(children):
                _get_or_create(child_name, child_icon, child_color, child_order, parent.id)

        if commit:
            self.db.commit()
        logger.info("Seeded %d default categories for user %s", len(created), user_id)
        return created

    def build_tree(self, rows: Iterable[models.Category]) -> list[dict]:
        """Return a forest of plain dicts (roots first) with nested ``children``."""
        nodes = {
            r.id: {
                "id": r.id,
                "user_id": r.user_id,
                "name": r.name,
                "icon": r.icon,
                "color": r.color,
                "parent_id": r.parent_id,
                "sort_order": r.sort_order,
                "children": [],
            }
            for r in rows
        }
        roots: list[dict] = []
        for node in nodes.values():
            parent_id = node["parent_id"]
            if parent_id and parent_id in nodes and parent_id != node["id"]:
                nodes[parent_id]["children"].append(node)
            else:
                roots.append(node)

        def _key(n: dict) -> tuple[int, int]:
            return (n["sort_order"] or 0, n["id"])

        for node in nodes.values():
            node["children"].sort(key=_key)
        return sorted(roots, key=_key)
