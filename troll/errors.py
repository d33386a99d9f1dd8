"""Exceptions raised by the agent core."""


class AgentError(RuntimeError):
    pass


class ToolLoopExceeded(AgentError):
    def __init__(self, session_id: str, iterations: int) -> None:
        super().__init__(
            f"tool-loop exceeded: {iterations} LLM calls without a final answer "
            f"(session {session_id!r})"
        )
        self.session_id = session_id
        self.iterations = iterations


class NoPendingApproval(AgentError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"No tool call is awaiting approval in session {session_id!r}")
        self.session_id = session_id
