"""LLM-powered fact extraction from rendered observations."""

import structlog

from llm.base import LLMError
from llm.parsing import parse_json_payload
from observability import metrics
from observations.models import Observation

from .errors import ExtractionError
from .models import Fact

logger = structlog.get_logger()

_EXTRACTION_SYSTEM = """You are a fact extraction system for a relationship manager.

Given one record about a contact (the "subject"), extract structured facts about that subject.
Records are often written in Korean. Keep evidence in the original language.

Fact types (use exactly one):
  PREFERENCE: things the subject likes or is interested in
  DISLIKE: things the subject dislikes or avoids
  RISK: risk factors such as allergies or health issues
  CONSTRAINT: limits on time, place or manner ("prefers morning meetings only")
  DATE: important dates such as birthdays and anniversaries
  ROLE_OR_ORG: role, title or organization
  INTERACTION: a meeting, call, meal, gift or other interaction
  CONTEXT: other background such as family, personality, hobbies

Rules:
- Extract ONLY what the text states explicitly. Do not infer or guess.
- Every fact must carry "evidence": a phrase quoted verbatim from the record.
- confidence is 0.0-1.0:
  1.0: stated directly ("likes coffee")
  0.8: strongly implied
  0.5: weakly implied
- fact_key is a short, specific, lowercase English identifier ("coffee", "morning_meeting", "nut_allergy").
- polarity: 1 for PREFERENCE, -1 for DISLIKE and RISK, 0 for the other types.
- Do not extract sensitive details (politics, religion, medical specifics).
- Output ONLY a JSON array. If there is nothing to extract, output: []

Example output:
[
  {"fact_type": "PREFERENCE", "fact_key": "coffee", "polarity": 1, "confidence": 0.9, "evidence": "커피를 좋아하신다고 하셨음"},
  {"fact_type": "DATE", "fact_key": "birthday", "polarity": 0, "confidence": 1.0, "evidence": "생일은 5월 15일"}
]"""

_KNOWN_FACTS = """Facts already known about this subject:
{facts}

When the new record relates to a known fact:
1. Reinforces it: emit the same fact_key again, with equal or higher confidence.
2. Supersedes it (a changed taste or situation): emit the new fact.
3. Contradicts it: emit the new fact with "action": "INVALIDATE" and "invalidate_key": "<old fact_key>".
"""

_RECORD = """{known}New record
- record_type: {record_type}
- occurred_at: {occurred_at}
- text:
{text}"""


def format_known_facts(facts: list[Fact]) -> str:
    return "\n".join(
        f"- [{f.fact_type}] {f.fact_key} (polarity: {f.polarity}, confidence: {f.confidence:.2f})"
        for f in facts
    )


class FactExtractor:
    """Turns one observation plus prior facts into raw candidate dicts."""

    def __init__(
        self,
        provider=None,
        max_context_facts: int = 25,
        max_tokens: int = 2000,
        temperature: float = 0.1,
        strict_evidence: bool = False,
    ):
        self._provider = provider
        self.max_context_facts = max_context_facts
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.strict_evidence = strict_evidence

    def _get_provider(self):
        if self._provider:
            return self._provider
        from llm.factory import create_extraction_provider

        self._provider = create_extraction_provider()
        return self._provider

    def build_prompt(self, observation: Observation, known_facts: list[Fact]) -> str:
        known = ""
        context = sorted(
            (f for f in known_facts if f.confidence > 0),
            key=lambda f: f.confidence,
            reverse=True,
        )[: self.max_context_facts]
        if context:
            known = _KNOWN_FACTS.format(facts=format_known_facts(context)) + "\n"
        occurred = observation.occurred_at.isoformat() if observation.occurred_at else "unknown"
        return _RECORD.format(
            known=known,
            record_type=observation.record_type,
            occurred_at=occurred,
            text=observation.rendered_text,
        )

    def extract(self, observation: Observation, known_facts: list[Fact] | None = None) -> list[dict]:
        """Ask the oracle for candidate facts.

        Returns raw dicts; validation happens downstream. An empty list means
        the record held nothing extractable.

        Raises:
            ExtractionError: provider failure or output that is not a JSON array.
        """
        prompt = self.build_prompt(observation, known_facts or [])
        try:
            with metrics.timer("oracle.extract"):
                response = self._get_provider().generate(
                    messages=[{"role": "user", "content": prompt}],
                    system=_EXTRACTION_SYSTEM,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                )
        except LLMError as e:
            metrics.counter("oracle.errors")
            raise ExtractionError(f"oracle call failed: {e}", observation.id) from e

        items = self._parse_response(response or "", observation)
        if self.strict_evidence:
            items = self._filter_unquoted(items, observation)
        return items

    def _parse_response(self, response: str, observation: Observation) -> list:
        try:
            items = parse_json_payload(response)
        except ValueError as e:
            logger.warning("fact_parse_failed", observation_id=observation.id, response=response[:200])
            raise ExtractionError(str(e), observation.id, response) from e

        if not isinstance(items, list):
            raise ExtractionError(
                f"expected a JSON array, got {type(items).__name__}", observation.id, response
            )
        return items

    def _filter_unquoted(self, items: list, observation: Observation) -> list:
        kept = []
        for item in items:
            evidence = item.get("evidence") if isinstance(item, dict) else None
            if isinstance(evidence, str) and evidence.strip() in observation.rendered_text:
                kept.append(item)
            else:
                logger.info(
                    "fact_evidence_not_quoted",
                    observation_id=observation.id,
                    evidence=str(evidence)[:100],
                )
        return kept
