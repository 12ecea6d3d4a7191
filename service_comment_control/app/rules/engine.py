"""
Rule evaluation engine for the Comment Control service.

Role rules are checked first, then post rules, both in listed order. The
first rule that decides wins; when nothing decides, comments stay open.
"""

import time
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional, Tuple

from .models import (
    LOGGED_IN, LOGGED_OUT,
    ActorContext, AgeUnit, ContentItem, EvaluationPhase, EvaluationResult,
    MatchingMode, PostRule, PostRuleKind, RoleRule, RuleSet, Verdict,
)


EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def subtract_age(now: datetime, amount: int, unit: AgeUnit) -> datetime:
    """Return ``now`` moved back by ``amount`` units.

    Months and years are calendar steps. A day that does not exist in the
    target month rolls forward into the next one (Aug 31 minus six months
    is Mar 3, or Mar 2 in a leap year). A cutoff before year 1 clamps to
    ``EARLIEST``, which no item predates.
    """
    try:
        if unit == AgeUnit.DAY:
            return now - timedelta(days=amount)
        if unit == AgeUnit.WEEK:
            return now - timedelta(weeks=amount)

        months = amount * 12 if unit == AgeUnit.YEAR else amount
        total = now.year * 12 + (now.month - 1) - months
        year, month = divmod(total, 12)
        first = date(year, month + 1, 1)
        target = first + timedelta(days=now.day - 1)
        return now.replace(year=target.year, month=target.month, day=target.day)
    except (OverflowError, ValueError):
        return EARLIEST


class RuleEngine:
    """Rule evaluation engine.

    The engine holds no rules; every call receives its own ``RuleSet`` so a
    single instance can be shared across requests and threads.
    """

    def __init__(self, mode: MatchingMode = MatchingMode.STRICT):
        self.mode = MatchingMode(mode)

    def evaluate(
        self,
        item: ContentItem,
        actor: ActorContext,
        rules: RuleSet,
        now: Optional[datetime] = None,
        open_by_default: bool = True,
    ) -> bool:
        """Return True when comments are open on ``item`` for ``actor``."""
        return self.explain(item, actor, rules, now=now, open_by_default=open_by_default).open

    def explain(
        self,
        item: ContentItem,
        actor: ActorContext,
        rules: RuleSet,
        now: Optional[datetime] = None,
        open_by_default: bool = True,
    ) -> EvaluationResult:
        """Evaluate rules and report which one decided."""
        start_time = time.perf_counter()
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        for index, rule in enumerate(rules.role_rules):
            verdict = self._match_role_rule(rule, item, actor)
            if verdict is not None:
                return EvaluationResult(
                    open=(verdict == Verdict.ALWAYS_OPEN),
                    phase=EvaluationPhase.ROLE,
                    rule_index=index,
                    reason=f"Role rule {index} ({rule.role}, {rule.post_type}) matched",
                    evaluation_time_ms=(time.perf_counter() - start_time) * 1000
                )

        for index, rule in enumerate(rules.post_rules):
            if rule.post_type != item.type:
                continue
            reason = self._check_post_rule(rule, item, now)
            if reason is not None:
                return EvaluationResult(
                    open=False,
                    phase=EvaluationPhase.POST,
                    rule_index=index,
                    reason=f"Post rule {index} closed comments: {reason}",
                    evaluation_time_ms=(time.perf_counter() - start_time) * 1000
                )

        return EvaluationResult(
            open=open_by_default,
            phase=EvaluationPhase.DEFAULT,
            reason="No rule decided",
            evaluation_time_ms=(time.perf_counter() - start_time) * 1000
        )

    def _match_role_rule(self, rule: RoleRule, item: ContentItem, actor: ActorContext) -> Optional[Verdict]:
        """Return the rule's verdict if it applies to this request."""
        for branch in self._role_branches(rule):
            if branch == LOGGED_IN:
                matched = actor.is_authenticated and item.type == rule.post_type
            elif branch == LOGGED_OUT:
                matched = not actor.is_authenticated and item.type == rule.post_type
            else:
                matched = rule.role in actor.roles

            if matched:
                return rule.verdict
        return None

    def _role_branches(self, rule: RoleRule) -> Tuple[str, ...]:
        if self.mode == MatchingMode.STRICT:
            return (rule.selector,)
        if rule.role == LOGGED_IN:
            return (LOGGED_IN, LOGGED_OUT, "role")
        if rule.role == LOGGED_OUT:
            return (LOGGED_OUT, "role")
        return ("role",)

    def _check_post_rule(self, rule: PostRule, item: ContentItem, now: datetime) -> Optional[str]:
        """Return a reason if the rule closes comments on ``item``."""
        for kind in self._post_kinds(rule):
            if kind == PostRuleKind.AGE:
                cutoff = subtract_age(now, rule.amount, rule.unit)
                if item.created_at < cutoff:
                    return f"older than {rule.amount} {rule.unit.value}(s)"
            else:
                limit = rule.max_comments or 0
                if item.comment_count >= limit:
                    return f"{item.comment_count} comments reached limit of {limit}"
        return None

    def _post_kinds(self, rule: PostRule) -> Iterator[PostRuleKind]:
        yield rule.kind
        if self.mode == MatchingMode.LEGACY and rule.kind == PostRuleKind.AGE:
            yield PostRuleKind.LIMIT


def evaluate(
    item: ContentItem,
    actor: ActorContext,
    rules: RuleSet,
    now: Optional[datetime] = None,
    mode: MatchingMode = MatchingMode.STRICT,
) -> bool:
    """Decide whether comments are open, using a one-off engine."""
    return RuleEngine(mode).evaluate(item, actor, rules, now=now)
