"""Memory prompt generation.

Modules:
- sanitization: scrubbing user text before it reaches a model
- quality: hard gates and graded assessment of prompts
- entities / tier1: template prompts right after a story is saved
- tier3: milestone analysis across all stories
- catalog, keywords, fallback: curated, in-flow and decade prompts
"""

from .quality import assess_prompt, is_worthy_entity, score_prompt_quality, validate_prompt_quality
from .tier1 import Tier1Prompt, generate_anchor_hash, generate_tier1_prompts
from .tier3 import Tier3Analysis, Tier3Analyzer, Tier3PromptDraft, is_milestone

__all__ = [
    "Tier1Prompt",
    "Tier3Analysis",
    "Tier3Analyzer",
    "Tier3PromptDraft",
    "assess_prompt",
    "generate_anchor_hash",
    "generate_tier1_prompts",
    "is_milestone",
    "is_worthy_entity",
    "score_prompt_quality",
    "validate_prompt_quality",
]
