"""Messages exchanged around supervised-process restarts."""

# Carried into a relaunch triggered by session size; the user's own text is
# already in history and reappears in the restored system prompt.
CONTINUE_PROMPT = (
    "Your previous session was restarted because its context grew too large. "
    "Continue the work from the restored chat history: answer the latest user "
    "request and re-dispatch any INCOMPLETE mini goal."
)

TOPIC_RESTART_REASON = (
    "New topic detected. Restarting with a fresh context; "
    "your message will be resubmitted automatically."
)

SIZE_RESTART_REASON = (
    "Session context is too large. Restarting with compressed history; "
    "the request will be continued automatically."
)

MINI_GOAL_DEFERRED = (
    "The main session exceeded its context budget, so a restart has been "
    "scheduled. This mini goal was recorded and will be re-executed after "
    "the restart. Stop here and do not call further tools."
)
