"""
Prompt Formatter for generation backends

Every backend receives the same role-tagged prompt, so switching tiers
never changes what the model sees:

    SYSTEM:
    <system instruction>

    USER:
    <user prompt>

    ASSISTANT:
"""

from vekkam.logging_config import debug_log

PROMPT_TEMPLATE = "SYSTEM:\n{system}\n\nUSER:\n{user}\n\nASSISTANT:\n"


def format_prompt(system_instruction: str, user_prompt: str) -> str:
    """
    Wrap a system instruction and user prompt in the wire format.

    Args:
        system_instruction: Persona / behaviour instruction
        user_prompt: The task for this request

    Returns:
        str: Prompt ending with the "ASSISTANT:" cue and a newline
    """
    wrapped = PROMPT_TEMPLATE.format(system=system_instruction or "", user=user_prompt or "")
    debug_log(f"[PROMPT FORMAT] System {len(system_instruction or '')} chars, "
              f"user {len(user_prompt or '')} chars, wrapped {len(wrapped)} chars")
    return wrapped
