"""Retention sweep entry point shared by startup, the API and the CLI."""
from __future__ import annotations

import logging
from typing import Optional

from rpage.core.config import Settings
from rpage.domain.outputs import OutputService, RetentionResult
from rpage.domain.settings import SettingService
from rpage.infrastructure.database import session_scope

logger = logging.getLogger(__name__)


async def run_retention_sweep(settings: Settings, days: Optional[int] = None) -> RetentionResult:
    """Sweep outputs using ``days`` or the stored ``keepOutputDays`` setting."""
    async with session_scope() as session:
        if days is None:
            days = await SettingService.with_session(session).get_retention_days(settings.retention.default_keep_days)
        return await OutputService.with_session(session).cleanup_old_outputs(days)


async def sweep_on_startup(settings: Settings) -> Optional[RetentionResult]:
    """Startup variant: failures are logged, never raised."""
    try:
        result = await run_retention_sweep(settings)
    except Exception:  # pylint: disable=broad-except
        logger.exception("Startup retention sweep failed")
        return None
    logger.info(
        "Startup cleanup removed %s outputs (%s non-screenshots and %s old outputs)",
        result.deleted,
        result.non_screenshots_removed,
        result.old_outputs_removed,
    )
    return result
