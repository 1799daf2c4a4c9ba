"""Heuristic cross-response synthesis: agreement, disagreement, insights.

No model call is made. Each answer is cut into sentence claims, claims are
reduced to stop-word filtered token sets with a positive/negative polarity,
and sources are compared pairwise by token overlap. This is lexical, not
semantic: paraphrases can look like agreement and contradictions without
shared vocabulary go unnoticed.
"""

import itertools
import re

from llm_council.models import (
    Claim,
    Disagreement,
    KeyInsight,
    ModelResponse,
    Polarity,
    Position,
    SynthesisData,
)

MAX_SENTENCES = 12
MAX_CLAIMS = 8
MAX_AGREEMENT_POINTS = 5
MAX_DISAGREEMENTS = 5
MAX_KEY_INSIGHTS = 6
MAX_VIEWS_PER_STANCE = 2
MIN_TOKEN_LEN = 3
OVERLAP_THRESHOLD = 0.5
TOPIC_TOKENS = 4
GENERIC_TOPIC = "Conflicting recommendations"

STOPWORDS = frozenset({
    "the", "and", "for", "that", "with", "this", "from", "your", "about",
    "into", "then", "than", "they", "them", "have", "has", "had", "will",
    "would", "could", "should", "must", "can", "use", "using", "you", "are",
    "was", "were", "been", "being", "not", "but", "all", "any", "its",
    "their", "there", "here", "also", "very", "more", "most", "some", "such",
    "only", "just", "over", "under", "when", "where", "what", "which", "while",
})

NEGATION_TOKENS = frozenset({"not", "don't", "dont", "no", "never", "avoid", "against"})
NEGATION_PHRASES = ("do not", "don't", "should not")

_LINE_SPLIT = re.compile(r"\n+")
_BULLET_PREFIX = re.compile(r"^[-*\d.)\s]+")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def _clamp01(value: float) -> float:
    if value != value:  # NaN
        return 0.0
    return min(1.0, max(0.0, value))


def split_sentences(text: str) -> list[str]:
    """Split on lines first (respects bullet lists), then on end punctuation."""
    sentences: list[str] = []
    for line in _LINE_SPLIT.split(text):
        line = _BULLET_PREFIX.sub("", line).strip()
        if not line:
            continue
        sentences.extend(part.strip() for part in _SENTENCE_SPLIT.split(line) if part.strip())
    return sentences[:MAX_SENTENCES]


def tokenize(text: str) -> list[str]:
    cleaned = _NON_ALNUM.sub(" ", text.lower())
    return [t for t in cleaned.split() if len(t) >= MIN_TOKEN_LEN and t not in STOPWORDS]


def detect_polarity(raw: str, tokens: list[str]) -> Polarity:
    lowered = raw.lower()
    if any(phrase in lowered for phrase in NEGATION_PHRASES):
        return "negative"
    if any(token in NEGATION_TOKENS for token in tokens):
        return "negative"
    return "positive"


def to_claim(sentence: str) -> Claim | None:
    tokens = sorted(set(tokenize(sentence)))
    if not tokens:
        return None
    return Claim(
        raw=sentence,
        tokens=tokens,
        key=" ".join(tokens),
        polarity=detect_polarity(sentence, tokens),
    )


def extract_claims(text: str) -> list[Claim]:
    claims = [c for c in (to_claim(s) for s in split_sentences(text)) if c is not None]
    return claims[:MAX_CLAIMS]


def overlap_ratio(a: list[str], b: list[str]) -> tuple[float, list[str]]:
    """|a ∩ b| / min(|a|, |b|), plus the shared tokens in ``a``'s order."""
    min_size = min(len(a), len(b))
    if min_size == 0:
        return 0.0, []
    b_set = set(b)
    shared = [t for t in a if t in b_set]
    return len(shared) / min_size, shared


def _topic(shared: list[str]) -> str:
    if not shared:
        return GENERIC_TOPIC
    return " ".join(shared[:TOPIC_TOKENS])


def _agreement_points(claims_by_source: dict[str, list[Claim]]) -> list[str]:
    if len(claims_by_source) < 2:
        return []
    key_sets = [{c.key for c in claims} for claims in claims_by_source.values()]
    first_claims = next(iter(claims_by_source.values()))

    points: list[str] = []
    seen: set[str] = set()
    for claim in first_claims:
        if claim.key in seen:
            continue
        seen.add(claim.key)
        if all(claim.key in keys for keys in key_sets):
            points.append(claim.raw)
        if len(points) >= MAX_AGREEMENT_POINTS:
            break
    return points


class _Stance:
    def __init__(self) -> None:
        self.sources: list[str] = []
        self.views: list[str] = []

    def add(self, source: str, view: str) -> None:
        if source not in self.sources:
            self.sources.append(source)
        if len(self.views) < MAX_VIEWS_PER_STANCE:
            self.views.append(view)


def _compare_sources(
    claims_by_source: dict[str, list[Claim]],
) -> tuple[int, int, dict[str, dict[Polarity, _Stance]]]:
    """Pairwise claim comparison across distinct sources.

    Returns (agreement_pairs, disagreement_pairs, topic -> stance map).
    """
    agreement_pairs = 0
    disagreement_pairs = 0
    topics: dict[str, dict[Polarity, _Stance]] = {}

    for source_a, source_b in itertools.combinations(claims_by_source, 2):
        for claim_a in claims_by_source[source_a]:
            for claim_b in claims_by_source[source_b]:
                ratio, shared = overlap_ratio(claim_a.tokens, claim_b.tokens)
                if ratio < OVERLAP_THRESHOLD:
                    continue
                if claim_a.polarity == claim_b.polarity:
                    agreement_pairs += 1
                    continue

                disagreement_pairs += 1
                stances = topics.setdefault(_topic(shared), {"positive": _Stance(), "negative": _Stance()})
                stances[claim_a.polarity].add(source_a, claim_a.raw)
                stances[claim_b.polarity].add(source_b, claim_b.raw)

    return agreement_pairs, disagreement_pairs, topics


def _disagreements(topics: dict[str, dict[Polarity, _Stance]]) -> list[Disagreement]:
    result: list[Disagreement] = []
    for topic, stances in topics.items():
        positions = [
            Position(sources=list(stance.sources), view=stance.views[0] if stance.views else topic)
            for stance in stances.values()
            if stance.sources
        ]
        if len(positions) < 2:
            continue
        result.append(Disagreement(topic=topic, positions=positions))
        if len(result) >= MAX_DISAGREEMENTS:
            break
    return result


def _key_insights(claims_by_source: dict[str, list[Claim]]) -> list[KeyInsight]:
    insights: list[KeyInsight] = []
    for source, claims in claims_by_source.items():
        if not claims:
            continue
        densest = max(claims, key=lambda c: len(c.tokens))
        insights.append(KeyInsight(source=source, insight=densest.raw))
    return insights[:MAX_KEY_INSIGHTS]


def extract_synthesis_data(responses: list[ModelResponse]) -> SynthesisData:
    """Summarize agreement and conflict across successful responses.

    Pure function: the same responses always give the same SynthesisData.
    Confidence is 0 with no successful response and 0.5 when there is only
    one source (no pairs to compare).
    """
    successful = [r for r in responses if r.error is None and r.content.strip()]
    if not successful:
        return SynthesisData()

    claims_by_source: dict[str, list[Claim]] = {}
    for response in successful:
        claims_by_source[response.provider] = extract_claims(response.content)

    agreement_pairs, disagreement_pairs, topics = _compare_sources(claims_by_source)

    source_count = len(claims_by_source)
    total_pairs = source_count * (source_count - 1) // 2
    score = (agreement_pairs - disagreement_pairs) / total_pairs if total_pairs else 0.0

    return SynthesisData(
        agreement_points=_agreement_points(claims_by_source),
        disagreements=_disagreements(topics),
        key_insights=_key_insights(claims_by_source),
        confidence=_clamp01((score + 1) / 2),
    )
