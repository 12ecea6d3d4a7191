"""
Rule data models for the Comment Control service.
"""

from typing import Dict, Any, Optional, List, Tuple
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from shared.errors import ConfigurationError


LOGGED_IN = "loggedin"
LOGGED_OUT = "loggedout"


class Verdict(str, Enum):
    """Outcome attached to a role rule."""
    ALWAYS_OPEN = "always"
    NEVER_OPEN = "never"


class PostRuleKind(str, Enum):
    """Condition kind carried by a post rule."""
    AGE = "age"
    LIMIT = "limit"


class AgeUnit(str, Enum):
    """Calendar unit for age rules."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class MatchingMode(str, Enum):
    """How rule entries are matched against a request.

    STRICT tests only the branch a rule declares. LEGACY lets a rule fall
    through into the branches that follow it (loggedin, loggedout, literal
    role for role rules; age, limit for post rules).
    """
    STRICT = "strict"
    LEGACY = "legacy"


class EvaluationPhase(str, Enum):
    """Which part of the evaluation produced the verdict."""
    ROLE = "role"
    POST = "post"
    DEFAULT = "default"


@dataclass(frozen=True)
class ContentItem:
    """Snapshot of the content whose comments are being checked."""
    type: str
    created_at: datetime
    comment_count: int = 0

    def __post_init__(self):
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=timezone.utc))
        if self.comment_count < 0:
            raise ValueError("comment_count must be non-negative")


@dataclass(frozen=True)
class ActorContext:
    """Snapshot of the requesting user or visitor."""
    is_authenticated: bool = False
    roles: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "roles", tuple(self.roles))


@dataclass(frozen=True)
class RoleRule:
    """Open or close comments for a role (or login state) on a post type."""
    role: str
    post_type: str
    verdict: Verdict

    def __post_init__(self):
        if not self.role:
            raise ConfigurationError("Role rule requires a role", {"field": "role"})
        if not self.post_type:
            raise ConfigurationError("Role rule requires a post type", {"field": "post_type"})
        if not isinstance(self.verdict, Verdict):
            raise ConfigurationError("Unknown role rule verdict", {"field": "type", "value": self.verdict})

    @property
    def selector(self) -> str:
        """Login-state keyword or 'role' for a literal role label."""
        if self.role in (LOGGED_IN, LOGGED_OUT):
            return self.role
        return "role"


@dataclass(frozen=True)
class PostRule:
    """Close comments on a post type once it is too old or has too many comments.

    AGE rules need ``amount`` and ``unit``; LIMIT rules need ``max_comments``.
    The field of the other kind may also be set; it is only consulted in
    legacy matching mode.
    """
    post_type: str
    kind: PostRuleKind
    amount: Optional[int] = None
    unit: Optional[AgeUnit] = None
    max_comments: Optional[int] = None

    def __post_init__(self):
        if not self.post_type:
            raise ConfigurationError("Post rule requires a post type", {"field": "post_type"})
        if not isinstance(self.kind, PostRuleKind):
            raise ConfigurationError("Unknown post rule type", {"field": "type", "value": self.kind})

        if self.kind == PostRuleKind.AGE:
            if self.amount is None or self.amount <= 0:
                raise ConfigurationError("Age rule requires a positive time", {"field": "time", "value": self.amount})
            if not isinstance(self.unit, AgeUnit):
                raise ConfigurationError("Unknown age rule unit", {"field": "unit", "value": self.unit})
        elif self.max_comments is None:
            raise ConfigurationError("Limit rule requires a comment limit", {"field": "limit"})

        if self.max_comments is not None and self.max_comments < 0:
            raise ConfigurationError("Comment limit must be non-negative", {"field": "limit", "value": self.max_comments})


@dataclass(frozen=True)
class RuleSet:
    """Ordered role rules and post rules; order is precedence."""
    role_rules: Tuple[RoleRule, ...] = ()
    post_rules: Tuple[PostRule, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "role_rules", tuple(self.role_rules))
        object.__setattr__(self, "post_rules", tuple(self.post_rules))

    def is_empty(self) -> bool:
        return not self.role_rules and not self.post_rules


@dataclass
class EvaluationResult:
    """Result of rule evaluation."""
    open: bool
    phase: EvaluationPhase = EvaluationPhase.DEFAULT
    rule_index: Optional[int] = None
    reason: Optional[str] = None
    evaluation_time_ms: float = 0.0


# API models

class ContentSnapshot(BaseModel):
    """Content item as posted by the caller."""
    type: str = Field(..., min_length=1, description="Content type, e.g. post or page")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    comment_count: int = Field(0, ge=0, description="Current number of comments")


class ActorSnapshot(BaseModel):
    """Requesting actor as posted by the caller."""
    is_authenticated: bool = Field(False, description="Whether the actor is logged in")
    roles: List[str] = Field(default_factory=list, description="Role labels held by the actor")


class CommentCheckRequest(BaseModel):
    """Request model for a comment openness check."""
    content: ContentSnapshot
    actor: ActorSnapshot = Field(default_factory=ActorSnapshot)
    open_by_default: bool = Field(True, description="Verdict when no rule decides")


class CommentCheckResponse(BaseModel):
    """Response model for a comment openness check."""
    open: bool = Field(..., description="Whether comments are open")
    phase: EvaluationPhase = Field(..., description="Phase that produced the verdict")
    rule_index: Optional[int] = Field(None, description="Index of the deciding rule in its list")
    reason: Optional[str] = Field(None, description="Reason for the decision")
    evaluation_time_ms: float = Field(0.0, description="Evaluation time in milliseconds")


class RuleSettingsUpdateRequest(BaseModel):
    """Request model for replacing persisted rule lists.

    Lists that are omitted keep their stored value.
    """
    role_rules: Optional[List[Dict[str, Any]]] = Field(None, description="Role rule records")
    post_rules: Optional[List[Dict[str, Any]]] = Field(None, description="Post rule records")


class RuleSettingsResponse(BaseModel):
    """Response model for a rule document."""
    role_rules: List[Dict[str, Any]]
    post_rules: List[Dict[str, Any]]
    customized: bool = Field(False, description="Whether persisted settings override the defaults")
