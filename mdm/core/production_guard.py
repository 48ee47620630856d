"""Startup configuration guard.

Runs once before the service accepts requests and fails hard (raises
``ProductionConfigError``) if a constraint is violated. Other code should
not scatter ``if is_production`` checks.
"""

from __future__ import annotations

import logging

from mdm.config import MdmConfig
from mdm.core.errors import StartupError

logger = logging.getLogger(__name__)


class ProductionConfigError(StartupError):
    """Raised when production configuration constraints are violated.

    It must not be caught and ignored — the process should exit.
    """


def enforce_production_constraints(config: MdmConfig) -> None:
    """Validate startup-critical configuration.

    Outside production, a missing ``api_key`` only logs a warning that
    authorization is disabled.

    Constraints enforced in production
    ----------------------------------
    1. Debug mode must be disabled.
    2. ``api_key`` must be set, unless ``allow_unauthenticated`` is true.

    Raises
    ------
    ProductionConfigError
        If any production constraint is violated.
    """
    if not config.auth_enabled:
        logger.warning(
            "No MDM_API_KEY configured: /ingest accepts unauthenticated requests."
        )

    if not config.is_production:
        return

    violations: list[str] = []

    if config.debug:
        violations.append(
            "debug=True is not allowed in production. Set MDM_DEBUG=false."
        )

    if not config.auth_enabled and not config.allow_unauthenticated:
        violations.append(
            "api_key is required in production. Set MDM_API_KEY, or set "
            "MDM_ALLOW_UNAUTHENTICATED=true to opt out explicitly."
        )

    if violations:
        msg = (
            "Production configuration guard failed.\n"
            + "\n".join(f"  - {v}" for v in violations)
        )
        logger.critical(msg)
        raise ProductionConfigError(msg)

    logger.info("Production configuration guard passed.")
