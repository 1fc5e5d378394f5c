"""Niti-Setu service layer -- pacing, retry, Gemini adapters and speech output."""

from __future__ import annotations

from nitisetu.services.chat import ConversationalResponder
from nitisetu.services.eligibility import BatchEvaluation, EligibilityEvaluator
from nitisetu.services.extraction import ProfileExtractor
from nitisetu.services.gemini import GeminiService, RemoteModel
from nitisetu.services.rate_gate import RateGate, rate_gate
from nitisetu.services.resilience import ResilientInvoker, is_retryable
from nitisetu.services.speech import SpeechOutputAdapter, decode_pcm16

__all__ = [
    "BatchEvaluation",
    "ConversationalResponder",
    "EligibilityEvaluator",
    "GeminiService",
    "ProfileExtractor",
    "RateGate",
    "RemoteModel",
    "ResilientInvoker",
    "SpeechOutputAdapter",
    "decode_pcm16",
    "is_retryable",
    "rate_gate",
]
