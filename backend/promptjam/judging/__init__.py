"""AI judge used to rank a round's prompts."""

from promptjam.judging.client import GeminiClient
from promptjam.judging.judge import FALLBACK_REASON, FailSoftJudge, Judge, LLMJudge, build_judge

__all__ = ['GeminiClient', 'FALLBACK_REASON', 'FailSoftJudge', 'Judge', 'LLMJudge', 'build_judge']
