from .runtime import ChatRuntime, ChatTurn, TranscriptEntry, session_title
