"""
Comment Control service.

Answers "are comments open on this content for this visitor?" by running
the configured rules through the rule engine, and lets administrators
read and replace the persisted rules.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException
from shared.base_service import BaseService
from shared.errors import ConfigurationError
from shared.logging import set_content_context

from .rules.defaults import DefaultRuleProvider
from .rules.engine import RuleEngine
from .rules.models import (
    ActorContext, CommentCheckRequest, CommentCheckResponse, ContentItem,
    MatchingMode, RuleSettingsResponse, RuleSettingsUpdateRequest,
)
from .settings.manager import RuleSettingsManager
from .settings.store import SettingsStore, create_settings_store


class CommentControlService(BaseService):
    """Comment Control service implementation."""

    def __init__(
        self,
        store: Optional[SettingsStore] = None,
        defaults: Optional[DefaultRuleProvider] = None,
        **config_overrides
    ):
        super().__init__("comment_control", 8013, **config_overrides)

        try:
            mode = MatchingMode(self.config.matching_mode.lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown matching mode: {self.config.matching_mode}",
                {"allowed": [m.value for m in MatchingMode]}
            )

        if store is None:
            store = create_settings_store(
                self.config.settings_backend,
                self.config.redis_url,
                self.config.settings_key
            )

        self.rule_engine = RuleEngine(mode)
        self.settings = RuleSettingsManager(store, defaults)

        self._setup_comment_control_routes()

    def _setup_comment_control_routes(self):
        """Set up comment-control-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "comment_control",
                "message": "Comment Control Service",
                "version": "1.0.0",
                "matching_mode": self.rule_engine.mode.value,
                "capabilities": ["role_rules", "post_rules", "default_rules"]
            }

        @self.app.post("/comments/check", response_model=CommentCheckResponse)
        async def check_comments(request: CommentCheckRequest):
            """Decide whether comments are open on a content item."""
            set_content_context(request.content.type)

            item = ContentItem(
                type=request.content.type,
                created_at=request.content.created_at,
                comment_count=request.content.comment_count
            )
            actor = ActorContext(
                is_authenticated=request.actor.is_authenticated,
                roles=tuple(request.actor.roles)
            )

            rules = await self.settings.get_rule_set()
            result = self.rule_engine.explain(
                item,
                actor,
                rules,
                now=datetime.now(timezone.utc),
                open_by_default=request.open_by_default
            )

            self.metrics.record_comment_check(
                result.open,
                result.phase.value,
                result.evaluation_time_ms / 1000
            )
            self.logger.debug(
                "Comment check result",
                open=result.open,
                phase=result.phase.value,
                rule_index=result.rule_index,
                reason=result.reason
            )

            return CommentCheckResponse(
                open=result.open,
                phase=result.phase,
                rule_index=result.rule_index,
                reason=result.reason,
                evaluation_time_ms=result.evaluation_time_ms
            )

        @self.app.get("/comments/rules", response_model=RuleSettingsResponse)
        async def get_rules():
            """Get the effective rules (persisted lists over defaults)."""
            document = await self.settings.get_document()
            return RuleSettingsResponse(
                role_rules=document.get("role_rules") or [],
                post_rules=document.get("post_rules") or [],
                customized=await self.settings.is_customized()
            )

        @self.app.get("/comments/rules/defaults", response_model=RuleSettingsResponse)
        async def get_default_rules():
            """Get the built-in rules after filters."""
            document = self.settings.defaults.get_defaults()
            return RuleSettingsResponse(
                role_rules=document.get("role_rules") or [],
                post_rules=document.get("post_rules") or [],
                customized=False
            )

        @self.app.put("/comments/rules", response_model=RuleSettingsResponse)
        async def update_rules(request: RuleSettingsUpdateRequest):
            """Replace the rule lists that are present in the request."""
            if request.role_rules is None and request.post_rules is None:
                raise HTTPException(status_code=400, detail="No rule lists supplied")

            try:
                document = await self.settings.update(request.model_dump(exclude_none=True))
            except ConfigurationError:
                self.metrics.increment_counter("settings_updates_total", status="rejected")
                raise

            self.metrics.increment_counter("settings_updates_total", status="saved")
            return RuleSettingsResponse(
                role_rules=document.get("role_rules") or [],
                post_rules=document.get("post_rules") or [],
                customized=True
            )

        @self.app.delete("/comments/rules")
        async def reset_rules():
            """Drop persisted rules so the defaults apply."""
            removed = await self.settings.reset()
            self.metrics.increment_counter("settings_updates_total", status="reset")
            return {"success": True, "removed": removed}

    async def _check_dependencies(self):
        """Check comment control service dependencies."""
        if await self.settings.store.health_check():
            return {"settings_store": "ok"}
        return {"settings_store": "error"}

    async def start(self):
        """Start comment control service components."""
        await self.settings.store.start()
        self.logger.info("Comment control service started", matching_mode=self.rule_engine.mode.value)

    async def stop(self):
        """Stop comment control service components."""
        await self.settings.store.stop()
        self.logger.info("Comment control service stopped")


def create_app():
    """Create comment control service application."""
    service = CommentControlService()
    return service.app


if __name__ == "__main__":
    service = CommentControlService()
    service.run()
