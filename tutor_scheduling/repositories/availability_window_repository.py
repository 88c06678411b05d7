# tutor_scheduling/repositories/availability_window_repository.py
"""
Availability window repository.

Read-side adapter the scheduling engine uses to fetch tutor windows.
Window creation and calendar sync belong to the tutor-facing feature.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import MAX_WINDOW_LIMIT
from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_utc
from ..models.availability_window import AvailabilityWindow
from ..scheduling.ports import WindowFilter
from ..scheduling.types import TimeWindow, WindowStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityWindowRepository(BaseRepository[AvailabilityWindow]):
    """Implements AvailabilityWindowSource over the availability_windows table."""

    def __init__(self, db: Session):
        super().__init__(db, AvailabilityWindow)
        self.logger = logging.getLogger(__name__)

    def list_windows(self, window_filter: WindowFilter) -> List[TimeWindow]:
        """
        List windows matching every given filter dimension, earliest first.

        Args:
            window_filter: Owner, id, subject, date-range and status filters

        Returns:
            Matching windows as domain values
        """
        try:
            query = self.db.query(AvailabilityWindow)

            if window_filter.owner_ids is not None:
                query = query.filter(AvailabilityWindow.owner_id.in_(list(window_filter.owner_ids)))
            if window_filter.window_ids is not None:
                query = query.filter(AvailabilityWindow.id.in_(list(window_filter.window_ids)))
            if window_filter.subject:
                query = query.filter(AvailabilityWindow.subject == window_filter.subject)
            if window_filter.starts_after is not None:
                query = query.filter(
                    AvailabilityWindow.end_at > ensure_utc(window_filter.starts_after)
                )
            if window_filter.ends_before is not None:
                query = query.filter(
                    AvailabilityWindow.start_at < ensure_utc(window_filter.ends_before)
                )
            if not window_filter.include_cancelled:
                query = query.filter(AvailabilityWindow.status == WindowStatus.ACTIVE.value)

            limit = min(window_filter.limit or MAX_WINDOW_LIMIT, MAX_WINDOW_LIMIT)
            rows = (
                query.order_by(AvailabilityWindow.start_at, AvailabilityWindow.id)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing availability windows: {str(e)}")
            raise RepositoryException(f"Failed to list availability windows: {str(e)}")

        return [row.to_domain() for row in rows]

    def get_window(self, window_id: str, include_cancelled: bool = False) -> Optional[TimeWindow]:
        """Get one window by id; cancelled windows are hidden unless requested."""
        row = self.get_by_id(window_id)
        if row is None:
            return None
        window = row.to_domain()
        if not include_cancelled and not window.is_active:
            return None
        return window
