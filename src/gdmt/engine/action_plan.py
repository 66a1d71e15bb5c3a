"""
Action Plan Generator

Turns an AuditResult into a short, priority-ordered list of ActionItems.

    ON_TARGET, CONTRAINDICATED  -> nothing
    UNKNOWN                     -> reassess (medium)
    MISSING, inertia only       -> initiate (high)
    UNDERDOSED                  -> uptitrate (medium)
    MISSING, real blockers      -> one action per distinct category:
                                   data staleness -> order_labs (high)
                                   anything else  -> resolve_blocker (low)

Identifiers are '<pillar>-<category>' so regenerating a plan from the same
audit yields identical output. The sort is stable and the list is capped.
"""

from __future__ import annotations

from gdmt.config import get_settings
from gdmt.core.blockers import DATA_AVAILABILITY_CODES, label_of
from gdmt.core.enums import ActionCategory, ActionPriority, BlockerCode, PillarStatus
from gdmt.core.schemas import ActionItem, AuditResult, PillarResult
from gdmt.ruleset.loader import Ruleset, get_default_ruleset


def _evidence_and_cautions(
    result: PillarResult, category: str, ruleset: Ruleset
) -> tuple[str | None, tuple[str, ...]]:
    guidance = ruleset.guidance_for(result.pillar, result.blockers)
    if guidance is not None:
        return guidance.evidence_source, guidance.when_not_to
    rules = ruleset.rules_for(result.pillar, category) or ruleset.rules_for(result.pillar)
    if rules:
        return rules[0].citation, ()
    return None, ()


def _item(
    result: PillarResult,
    category: ActionCategory,
    priority: ActionPriority,
    title: str,
    rationale: str,
    suggested_action: str,
    audit_category: str,
    ruleset: Ruleset,
) -> ActionItem:
    evidence, cautions = _evidence_and_cautions(result, audit_category, ruleset)
    return ActionItem(
        id=f"{result.pillar.value}-{category.value}",
        pillar=result.pillar,
        category=category,
        priority=priority,
        title=title,
        rationale=rationale,
        suggested_action=suggested_action,
        evidence=evidence,
        cautions=cautions,
    )


def actions_for_pillar(result: PillarResult, audit_category: str, ruleset: Ruleset) -> list[ActionItem]:
    """Actions for a single pillar result, in detection order."""
    label = result.pillar.label
    real_blockers = [b for b in result.blockers if b is not BlockerCode.CLINICAL_INERTIA]

    if result.status in (PillarStatus.ON_TARGET, PillarStatus.CONTRAINDICATED):
        return []

    if result.status is PillarStatus.UNKNOWN:
        return [
            _item(
                result,
                ActionCategory.REASSESS,
                ActionPriority.MEDIUM,
                f"{label}: Assessment needed",
                "Insufficient data to determine pillar status. Further assessment required.",
                f"Gather additional information to assess {label} status.",
                audit_category,
                ruleset,
            )
        ]

    if result.status is PillarStatus.UNDERDOSED:
        return [
            _item(
                result,
                ActionCategory.UPTITRATE,
                ActionPriority.MEDIUM,
                f"{label}: Uptitration opportunity",
                "Below target dose.",
                "Current dose is below target. Consider uptitration if tolerated.",
                audit_category,
                ruleset,
            )
        ]

    if not real_blockers:
        return [
            _item(
                result,
                ActionCategory.INITIATE,
                ActionPriority.HIGH,
                f"{label}: Consider initiating",
                "No identified contraindication. Guideline-directed therapy not yet started.",
                f"Consider initiating {label}",
                audit_category,
                ruleset,
            )
        ]

    actions: list[ActionItem] = []
    seen: set[ActionCategory] = set()
    for blocker in real_blockers:
        blocker_label = label_of(blocker)
        if blocker in DATA_AVAILABILITY_CODES:
            if ActionCategory.ORDER_LABS in seen:
                continue
            seen.add(ActionCategory.ORDER_LABS)
            actions.append(
                _item(
                    result,
                    ActionCategory.ORDER_LABS,
                    ActionPriority.HIGH,
                    f"{label}: {blocker_label}",
                    f"{blocker_label}. Updated values are needed to assess eligibility.",
                    "Order updated lab panel and recheck vitals to reassess eligibility.",
                    audit_category,
                    ruleset,
                )
            )
        else:
            if ActionCategory.RESOLVE_BLOCKER in seen:
                continue
            seen.add(ActionCategory.RESOLVE_BLOCKER)
            actions.append(
                _item(
                    result,
                    ActionCategory.RESOLVE_BLOCKER,
                    ActionPriority.LOW,
                    f"{label}: {blocker_label}",
                    f"{blocker_label} identified as a barrier. Review whether this can be addressed.",
                    f"Review and address {blocker_label.lower()} if clinically appropriate.",
                    audit_category,
                    ruleset,
                )
            )
    return actions


def generate_action_plan(
    audit: AuditResult,
    ruleset: Ruleset | None = None,
    max_items: int | None = None,
) -> list[ActionItem]:
    """
    Build the capped, priority-ordered action plan for an audit.

    Args:
        audit: Completed audit.
        ruleset: Source of evidence and cautions (default: configured ruleset).
        max_items: Cap on returned items (default: GDMT_ACTION_PLAN_MAX_ITEMS).
    """
    if ruleset is None:
        ruleset = get_default_ruleset()
    if max_items is None:
        max_items = get_settings().action_plan.max_items

    actions: list[ActionItem] = []
    for result in audit.pillar_results:
        actions.extend(actions_for_pillar(result, audit.category, ruleset))

    # sorted() is stable: equal priorities keep pillar order
    actions = sorted(actions, key=lambda a: a.priority.rank)
    return actions[:max_items]
