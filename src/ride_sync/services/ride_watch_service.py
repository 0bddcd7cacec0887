"""Turn successive ride-list snapshots into notification drafts.

Used only while no duplex channel is available: polling ride state is then
the only signal that something happened.
"""
from __future__ import annotations

from ride_sync.application.dto.notification import NotificationDraft
from ride_sync.domain.entities.ride import RideSummary
from ride_sync.domain.value_objects.enums import NotificationCategory

RideSnapshot = dict[str, str]


def snapshot_of(rides: list[RideSummary]) -> RideSnapshot:
    return {r.id: r.status for r in rides}


def diff_rides(
    previous: RideSnapshot | None,
    rides: list[RideSummary],
) -> tuple[list[NotificationDraft], RideSnapshot]:
    """Return the drafts for what changed and the snapshot to diff against next.

    A ``None`` previous snapshot means nothing has been observed yet; the
    first poll only primes the snapshot.
    """
    current = snapshot_of(rides)
    if previous is None:
        return [], current

    drafts: list[NotificationDraft] = []
    for ride in rides:
        if ride.id not in previous:
            drafts.append(
                NotificationDraft(
                    title="Ride created",
                    body=f"Your ride {ride.id} was created",
                    category=NotificationCategory.INFORMATIONAL,
                )
            )
        elif previous[ride.id] != ride.status:
            drafts.append(
                NotificationDraft(
                    title="Ride update",
                    body=f"Ride {ride.id} status: {ride.status}",
                    category=NotificationCategory.UPDATES,
                )
            )

    # rides missing from this response stay in the snapshot
    return drafts, {**previous, **current}
