"""Turn processing: normalization, guards, the step loop and sessions."""

from .checkpoints import load_latest, load_or_create, save_checkpoint
from .guards import GuardDecision, GuardPolicy, Verdict, default_policy
from .loop import LoopReport, LoopState, StepLoop
from .normalizer import build_system_prompt, to_model_turns
from .scheduler import ManualScheduler, Scheduler, TimerScheduler
from .session import ChatSession
from .sessions import SessionManager

__all__ = [
    "ChatSession",
    "GuardDecision",
    "GuardPolicy",
    "LoopReport",
    "LoopState",
    "ManualScheduler",
    "Scheduler",
    "SessionManager",
    "StepLoop",
    "TimerScheduler",
    "Verdict",
    "build_system_prompt",
    "default_policy",
    "load_latest",
    "load_or_create",
    "save_checkpoint",
    "to_model_turns",
]
