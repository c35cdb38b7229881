"""
Exploit Alert Log.

Append-only record of anomalies observed on a registered protocol.
Alerts are observational: they never pause policies or pools. The
administrator may later confirm or dismiss an alert exactly once.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.config import Settings
from riskcover.db.keys import alert_key
from riskcover.db.models import ExploitAlert
from riskcover.db.repositories.alert import alert_repo
from riskcover.db.repositories.protocol import protocol_repo, protocol_state_repo
from riskcover.errors import AlertAlreadyResolved, InvalidParameter, InvalidSeverity, Unauthorized
from riskcover.schemas.common import AnomalyType
from riskcover.services.clock import Clock
from riskcover.services.protocol_service import require_admin

logger = structlog.get_logger(__name__)


class AlertService:

    def __init__(self, settings: Settings, clock: Clock):
        self.settings = settings
        self.clock = clock

    async def create_alert(
        self,
        session: AsyncSession,
        signer: str,
        protocol_id: str,
        anomaly_type,
        severity: int,
        details: str,
    ) -> ExploitAlert:
        protocol = await protocol_repo.get_or_raise(session, protocol_id, for_update=True)
        state = await protocol_state_repo.load(session)
        if signer not in (protocol.authority, state.authority):
            raise Unauthorized("only the protocol authority or administrator may raise alerts",
                               signer=signer)

        kind = AnomalyType.parse(anomaly_type)
        if isinstance(severity, bool) or not isinstance(severity, int) or not 0 <= severity <= 100:
            raise InvalidSeverity("severity must be within [0, 100]", severity=str(severity))
        details = details or ""
        if len(details) > self.settings.max_alert_details_length:
            raise InvalidParameter(
                f"details exceed {self.settings.max_alert_details_length} characters", field="details",
            )

        now = self.clock.now()
        sequence = protocol.alert_count
        alert = ExploitAlert(
            id=alert_key(protocol_id, now, sequence),
            protocol_id=protocol_id,
            sequence=sequence,
            anomaly_type=kind.value,
            severity=severity,
            details=details,
            reporter=signer,
            is_confirmed=False,
            is_resolved=False,
            created_at=now,
        )
        protocol.alert_count = sequence + 1
        await alert_repo.add(session, alert)

        logger.info(
            "exploit_alert_created",
            alert_id=alert.id,
            protocol_id=protocol_id,
            sequence=sequence,
            anomaly_type=kind.value,
            severity=severity,
        )
        return alert

    async def resolve_alert(
        self,
        session: AsyncSession,
        signer: str,
        alert_id: str,
        is_confirmed: bool,
        notes: str,
    ) -> ExploitAlert:
        """Confirm or dismiss an alert. Administrator only, once."""
        state = await protocol_state_repo.load(session)
        require_admin(state, signer)

        alert = await alert_repo.get_or_raise(session, alert_id, for_update=True)
        if alert.is_resolved:
            raise AlertAlreadyResolved("alert is already resolved", alert_id=alert_id)
        notes = notes or ""
        if len(notes) > self.settings.max_claim_text_length:
            raise InvalidParameter(
                f"notes exceed {self.settings.max_claim_text_length} characters", field="notes",
            )

        alert.is_confirmed = bool(is_confirmed)
        alert.is_resolved = True
        alert.resolution_notes = notes
        alert.resolved_at = self.clock.now()
        await session.flush()

        logger.info(
            "exploit_alert_resolved",
            alert_id=alert_id,
            protocol_id=alert.protocol_id,
            is_confirmed=alert.is_confirmed,
        )
        return alert
