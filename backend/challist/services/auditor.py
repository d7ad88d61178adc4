from __future__ import annotations
import structlog

from challist.errors import UpstreamError
from challist.schemas.audit import Diagnosis, PlacementIssue, PlacementRepair, RepairResult
from challist.services.ledger import sort_levels
from challist.store import Store

log = structlog.get_logger()


class PlacementAuditor:
    """
    Finds and heals placement drift straight against the stored levels.

    Stored order (placement, then id) is taken as the truth for relative order;
    repair renumbers to 1..N keeping that order, it never re-ranks anything.
    """

    def __init__(self, store: Store):
        self.repo = store.levels

    async def diagnose(self) -> Diagnosis:
        levels = sort_levels(await self.repo.list())
        walk: list[PlacementIssue] = []
        counts: dict[int, int] = {}
        for expected, lv in enumerate(levels, start=1):
            walk.append(PlacementIssue(id=lv.id, name=lv.name, current=lv.placement, expected=expected))
            counts[lv.placement] = counts.get(lv.placement, 0) + 1

        issues = [w for w in walk if w.current != w.expected]
        dx = Diagnosis(
            total=len(levels),
            levels=walk,
            issues=issues,
            duplicates=sorted(p for p, c in counts.items() if c > 1),
            gaps=sorted(set(range(1, len(levels) + 1)) - set(counts)),
        )
        if issues:
            log.warning("auditor.drift", total=dx.total, issues=len(issues), duplicates=dx.duplicates, gaps=dx.gaps)
        return dx

    async def repair(self, dry_run: bool = True) -> RepairResult:
        dx = await self.diagnose()
        repairs = [PlacementRepair(id=i.id, name=i.name, old=i.current, new=i.expected) for i in dx.issues]
        if dry_run or not repairs:
            return RepairResult(repaired=len(repairs) if not dry_run else 0, repairs=repairs, dry_run=dry_run)

        done = 0
        for r in repairs:
            try:
                updated = await self.repo.update(r.id, placement=r.new)
            except UpstreamError:
                # the rest stays drifted; a re-run picks up where this stopped
                log.error("auditor.repair_interrupted", repaired=done, pending=len(repairs) - done, level_id=r.id)
                raise
            if updated is not None:
                done += 1
        log.info("auditor.repair", repaired=done, planned=len(repairs))
        return RepairResult(repaired=done, repairs=repairs, dry_run=False)

    async def verify(self) -> bool:
        return (await self.diagnose()).clean
