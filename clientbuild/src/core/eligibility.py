from dataclasses import dataclass
from typing import Optional

from clientbuild.src.core.models import Identity


@dataclass(frozen=True)
class Eligibility:
    allowed: bool
    reason: Optional[str] = None


def check_eligibility(build_service, identity: Optional[Identity], team_id: str) -> Eligibility:
    """Ask the build service whether a new build may be requested for this team.

    A plain query: nothing is retried and the caller decides what a denial means.
    """
    response = build_service.is_allowed_to_build(user=identity, team_id=team_id)
    allowed = bool(response.get("isAllowed"))
    return Eligibility(
        allowed=allowed,
        reason=None if allowed else response.get("errorMessage") or "unknown reason",
    )
