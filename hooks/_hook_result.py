"""
HookResult for thrash guard hooks, plus the PostToolUse output envelope.

Thrash findings are advisory: results always approve and carry the rendered
findings as context to inject into the conversation.
"""

from dataclasses import dataclass, field


@dataclass
class HookResult:
    """Result from a hook check.

    Attributes:
        decision: Always "approve"; findings never block the tool call
        context: Additional context to inject into the conversation
        findings: Serialized findings behind the context (for logging/tests)
    """

    decision: str = "approve"
    context: str = ""
    findings: list = field(default_factory=list)

    @staticmethod
    def none() -> "HookResult":
        """Return empty result (no context, no findings)."""
        return HookResult()

    @staticmethod
    def with_findings(context: str, findings: list) -> "HookResult":
        """Approve with rendered findings as context."""
        return HookResult(decision="approve", context=context, findings=list(findings))

    def to_hook_output(self, event_name: str = "PostToolUse") -> dict:
        """Build the hookSpecificOutput envelope the host expects on stdout."""
        output = {"hookSpecificOutput": {"hookEventName": event_name}}
        if self.context:
            output["hookSpecificOutput"]["additionalContext"] = self.context
        return output
