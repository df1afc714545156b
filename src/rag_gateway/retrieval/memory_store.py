"""
In-memory document store - the test double for Elasticsearch.

Interprets the subset of the query DSL the gateway emits:

- ``query``: bool (must / should / filter / must_not / minimum_should_match),
  match_all, multi_match (best_fields, field boosts, AUTO fuzziness),
  match, match_phrase, terms, term, range
- ``knn``: exact cosine search with optional filter clauses
- ``retriever``: standard, knn and rrf (fused with reciprocal_rank_fusion)
- ``aggs``: terms and date_histogram (monthly)
- ``highlight`` and ``_source.excludes``

Lexical scoring uses BM25 (rank_bm25) per field. The point is realistic
ranking behaviour in tests and mock mode, not score parity with a cluster.
"""

from __future__ import annotations

import itertools
import logging
import re
import threading
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Iterable

import numpy as np
from rank_bm25 import BM25Plus

from rag_gateway.core import BulkIndexResult, SearchHit, SearchResponse
from rag_gateway.core.errors import InvalidDocumentError
from rag_gateway.retrieval.document import Document
from rag_gateway.search.filters import parse_iso_date
from rag_gateway.search.fusion import reciprocal_rank_fusion

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("title", "summary", "content", "tags")
_TOKEN_RE = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _field_text(source: dict[str, Any], field: str) -> str:
    value = source.get(field) or ""
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value)


def _field_values(source: dict[str, Any], field: str) -> list[Any]:
    value = source.get(field.removesuffix(".keyword"))
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _max_edits(token: str) -> int:
    """Edit budget for ``fuzziness: AUTO``."""
    if len(token) <= 2:
        return 0
    if len(token) <= 5:
        return 1
    return 2


def edit_distance(a: str, b: str, limit: int) -> int:
    """Levenshtein distance, short-circuiting once it exceeds ``limit``."""
    if abs(len(a) - len(b)) > limit:
        return limit + 1
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        if min(current) > limit:
            return limit + 1
        previous = current
    return previous[-1]


# ---------------------------------------------------------------------------
# LEXICAL INDEX
# ---------------------------------------------------------------------------


class _LexicalIndex:
    """Per-field BM25 models over a snapshot of an index."""

    def __init__(self, docs: dict[str, dict[str, Any]]):
        self._positions = {doc_id: i for i, doc_id in enumerate(docs)}
        self._tokens: dict[str, list[list[str]]] = {}
        self._token_sets: dict[str, list[set[str]]] = {}
        self._models: dict[str, BM25Plus] = {}
        self._vocabulary: set[str] = set()
        self._expansions: dict[str, list[str]] = {}

        for field in TEXT_FIELDS:
            corpus = [tokenize(_field_text(source, field)) for source in docs.values()]
            self._tokens[field] = corpus
            self._token_sets[field] = [set(tokens) for tokens in corpus]
            for tokens in corpus:
                self._vocabulary.update(tokens)
            # BM25 divides by the average field length
            if corpus and sum(len(tokens) for tokens in corpus) > 0:
                self._models[field] = BM25Plus(corpus)

    def expand(self, token: str) -> list[str]:
        """Vocabulary terms within the AUTO edit budget of ``token``."""
        if token not in self._expansions:
            limit = _max_edits(token)
            if limit == 0:
                matches = [token] if token in self._vocabulary else []
            else:
                matches = sorted(
                    term for term in self._vocabulary
                    if edit_distance(token, term, limit) <= limit
                )
            self._expansions[token] = matches or [token]
        return self._expansions[token]

    def score(self, field: str, doc_id: str, terms: Iterable[str]) -> float | None:
        """BM25 score of the terms present in the field, None if none are."""
        model = self._models.get(field)
        position = self._positions.get(doc_id)
        if model is None or position is None:
            return None
        present = self._token_sets[field][position]
        matched = [term for term in dict.fromkeys(terms) if term in present]
        if not matched:
            return None
        return float(model.get_batch_scores(matched, [position])[0])

    def has_phrase(self, field: str, doc_id: str, phrase: list[str]) -> bool:
        position = self._positions.get(doc_id)
        if position is None or not phrase:
            return False
        tokens = self._tokens[field][position]
        width = len(phrase)
        return any(tokens[i:i + width] == phrase for i in range(len(tokens) - width + 1))


def _parse_field(spec: str) -> tuple[str, float]:
    name, _, boost = spec.partition("^")
    return name, float(boost) if boost else 1.0


# ---------------------------------------------------------------------------
# QUERY EVALUATION
# ---------------------------------------------------------------------------


class _QueryEvaluator:
    """Scores one query clause against one document. None means no match."""

    def __init__(self, lexical: _LexicalIndex):
        self._lexical = lexical

    def score(self, clause: dict[str, Any], doc_id: str, source: dict[str, Any]) -> float | None:
        if len(clause) != 1:
            raise ValueError(f"Query clause must have exactly one key: {list(clause)}")
        (kind, spec), = clause.items()
        handler = getattr(self, f"_{kind}", None)
        if handler is None:
            raise ValueError(f"Unsupported query clause: {kind}")
        return handler(spec, doc_id, source)

    def _match_all(self, spec, doc_id, source):
        return float((spec or {}).get("boost", 1.0))

    def _bool(self, spec, doc_id, source):
        must = _as_list(spec.get("must"))
        should = _as_list(spec.get("should"))
        filters = _as_list(spec.get("filter"))
        must_not = _as_list(spec.get("must_not"))

        total = 0.0
        for clause in must:
            score = self.score(clause, doc_id, source)
            if score is None:
                return None
            total += score
        for clause in filters:
            if self.score(clause, doc_id, source) is None:
                return None
        for clause in must_not:
            if self.score(clause, doc_id, source) is not None:
                return None

        matched = 0
        for clause in should:
            score = self.score(clause, doc_id, source)
            if score is not None:
                matched += 1
                total += score

        default_minimum = 0 if (must or filters) else (1 if should else 0)
        if matched < int(spec.get("minimum_should_match", default_minimum)):
            return None
        return total

    def _terms_for(self, text: str, fuzzy: bool) -> list[str]:
        tokens = tokenize(text)
        if not fuzzy:
            return tokens
        return [term for token in tokens for term in self._lexical.expand(token)]

    def _multi_match(self, spec, doc_id, source):
        terms = self._terms_for(spec.get("query", ""), bool(spec.get("fuzziness")))
        best = None
        for field_spec in spec.get("fields", TEXT_FIELDS):
            field, boost = _parse_field(field_spec)
            score = self._lexical.score(field, doc_id, terms)
            if score is not None and (best is None or boost * score > best):
                best = boost * score
        return best

    def _match(self, spec, doc_id, source):
        (field, params), = spec.items()
        if not isinstance(params, dict):
            params = {"query": params}
        terms = self._terms_for(params.get("query", ""), bool(params.get("fuzziness")))
        score = self._lexical.score(field, doc_id, terms)
        if score is None:
            return None
        return float(params.get("boost", 1.0)) * score

    def _match_phrase(self, spec, doc_id, source):
        (field, params), = spec.items()
        if not isinstance(params, dict):
            params = {"query": params}
        phrase = tokenize(params.get("query", ""))
        if not self._lexical.has_phrase(field, doc_id, phrase):
            return None
        score = self._lexical.score(field, doc_id, phrase) or 0.0
        return float(params.get("boost", 1.0)) * score

    def _terms(self, spec, doc_id, source):
        (field, wanted), = ((k, v) for k, v in spec.items() if k != "boost")
        values = _field_values(source, field)
        if any(value in wanted for value in values):
            return float(spec.get("boost", 1.0))
        return None

    def _term(self, spec, doc_id, source):
        (field, wanted), = spec.items()
        if isinstance(wanted, dict):
            wanted = wanted.get("value")
        return 1.0 if wanted in _field_values(source, field) else None

    def _range(self, spec, doc_id, source):
        (field, bounds), = spec.items()
        value = parse_iso_date(source.get(field))
        if value is None:
            return None
        checks = {
            "gte": lambda bound: value >= bound,
            "gt": lambda bound: value > bound,
            "lte": lambda bound: value <= bound,
            "lt": lambda bound: value < bound,
        }
        for op, check in checks.items():
            if op in bounds:
                bound = parse_iso_date(bounds[op])
                if bound is not None and not check(bound):
                    return None
        return 1.0


# ---------------------------------------------------------------------------
# AGGREGATIONS AND HIGHLIGHTING
# ---------------------------------------------------------------------------


def _aggregate(spec: dict[str, Any], sources: list[dict[str, Any]]) -> dict[str, Any]:
    results: dict[str, Any] = {}
    for name, agg in spec.items():
        if "terms" in agg:
            field = agg["terms"]["field"]
            counts = Counter(
                value for source in sources for value in set(_field_values(source, field))
            )
            ordered = sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))
            size = agg["terms"].get("size", 10)
            results[name] = {
                "buckets": [{"key": key, "doc_count": count} for key, count in ordered[:size]]
            }
        elif "date_histogram" in agg:
            field = agg["date_histogram"]["field"]
            months = Counter()
            for source in sources:
                value = parse_iso_date(source.get(field))
                if value is not None:
                    months[value.replace(day=1)] += 1
            results[name] = {
                "buckets": [
                    {
                        "key_as_string": month.isoformat(),
                        "key": int(datetime(month.year, month.month, 1, tzinfo=timezone.utc).timestamp() * 1000),
                        "doc_count": count,
                    }
                    for month, count in sorted(months.items())
                ]
            }
        else:
            raise ValueError(f"Unsupported aggregation: {list(agg)}")
    return results


def _query_texts(node: Any) -> list[str]:
    """Every free-text query string in a body, for highlighting."""
    texts: list[str] = []
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "multi_match" and isinstance(value, dict):
                texts.append(value.get("query", ""))
            elif key in ("match", "match_phrase") and isinstance(value, dict):
                for params in value.values():
                    texts.append(params.get("query", "") if isinstance(params, dict) else str(params))
            else:
                texts.extend(_query_texts(value))
    elif isinstance(node, list):
        for item in node:
            texts.extend(_query_texts(item))
    return texts


def _highlight(spec: dict[str, Any], source: dict[str, Any], terms: set[str]) -> dict[str, list[str]]:
    pre = _as_list(spec.get("pre_tags", ["<em>"]))[0]
    post = _as_list(spec.get("post_tags", ["</em>"]))[0]

    def mark(text: str) -> tuple[str, bool]:
        found = False

        def wrap(match: re.Match) -> str:
            nonlocal found
            if match.group(0).lower() in terms:
                found = True
                return f"{pre}{match.group(0)}{post}"
            return match.group(0)

        return re.sub(r"[A-Za-z0-9]+", wrap, text), found

    highlight: dict[str, list[str]] = {}
    for field, options in spec.get("fields", {}).items():
        text = _field_text(source, field)
        if not text:
            continue
        options = options or {}
        fragments_wanted = options.get("number_of_fragments", 5)
        if fragments_wanted == 0:
            marked, found = mark(text)
            if found:
                highlight[field] = [marked]
            continue
        fragment_size = options.get("fragment_size", 100)
        fragments = []
        for sentence in re.split(r"(?<=[.!?])\s+", text):
            marked, found = mark(sentence[:fragment_size])
            if found:
                fragments.append(marked)
            if len(fragments) >= fragments_wanted:
                break
        if fragments:
            highlight[field] = fragments
    return highlight


# ---------------------------------------------------------------------------
# IN-MEMORY STORE (Test double)
# ---------------------------------------------------------------------------


class InMemoryDocumentStore:
    """
    In-memory document store for testing and mock mode.

    Thread-safe: writes and lexical-index rebuilds take a lock, searches
    run against a snapshot.
    """

    def __init__(self, dimensions: int = 768):
        self.dimensions = dimensions
        self._indices: dict[str, dict[str, dict[str, Any]]] = {}
        self._lexical: dict[str, _LexicalIndex] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    # -- writes ------------------------------------------------------------

    def create_index(self, index: str, dimensions: int) -> bool:
        with self._lock:
            if index in self._indices:
                return False
            self._indices[index] = {}
            self.dimensions = dimensions
            return True

    def index_document(self, index: str, document: Document) -> str:
        document.validate(self.dimensions)
        with self._lock:
            doc_id = document.id or f"doc-{next(self._ids)}"
            self._indices.setdefault(index, {})[doc_id] = document.to_source()
            self._lexical.pop(index, None)
        return doc_id

    def bulk_index(self, index: str, documents: list[Document]) -> BulkIndexResult:
        indexed = 0
        errors: list[str] = []
        for document in documents:
            try:
                self.index_document(index, document)
                indexed += 1
            except InvalidDocumentError as e:
                errors.append(str(e))
        return BulkIndexResult(indexed=indexed, errors=errors)

    def ping(self) -> bool:
        return True

    def count(self, index: str) -> int:
        return len(self._indices.get(index, {}))

    def clear(self) -> None:
        with self._lock:
            self._indices.clear()
            self._lexical.clear()

    # -- search ------------------------------------------------------------

    def _snapshot(self, index: str) -> tuple[dict[str, dict[str, Any]], _LexicalIndex]:
        with self._lock:
            docs = dict(self._indices.get(index, {}))
            lexical = self._lexical.get(index)
            if lexical is None:
                lexical = _LexicalIndex(docs)
                self._lexical[index] = lexical
            return docs, lexical

    def search(self, index: str, body: dict[str, Any]) -> SearchResponse:
        start = time.perf_counter()
        docs, lexical = self._snapshot(index)
        evaluator = _QueryEvaluator(lexical)

        if "retriever" in body:
            ranked = self._retrieve(docs, evaluator, body["retriever"])
        elif "knn" in body:
            ranked = self._knn(docs, evaluator, body["knn"])
        else:
            ranked = self._query(docs, evaluator, body.get("query", {"match_all": {}}))

        size = body.get("size", 10)
        excludes = set((body.get("_source") or {}).get("excludes", []))
        highlight_spec = body.get("highlight")
        highlight_terms = {
            term for text in _query_texts(body) for term in tokenize(text)
        }

        hits = []
        for doc_id, score, rank in ranked[:size]:
            source = {k: v for k, v in docs[doc_id].items() if k not in excludes}
            highlight = None
            if highlight_spec and highlight_terms:
                highlight = _highlight(highlight_spec, docs[doc_id], highlight_terms) or None
            hits.append(SearchHit(id=doc_id, score=score, source=source, highlight=highlight, rank=rank))

        aggregations = {}
        if body.get("aggs"):
            aggregations = _aggregate(body["aggs"], [docs[doc_id] for doc_id, _, _ in ranked])

        return SearchResponse(
            hits=hits,
            total=len(ranked),
            max_score=max((hit.score for hit in hits), default=None),
            took_ms=(time.perf_counter() - start) * 1000,
            aggregations=aggregations,
        )

    def _query(self, docs, evaluator, query) -> list[tuple[str, float, int | None]]:
        scored = []
        for doc_id, source in docs.items():
            score = evaluator.score(query, doc_id, source)
            if score is not None:
                scored.append((doc_id, score, None))
        # sorted() is stable: equal scores keep insertion order
        return sorted(scored, key=lambda item: item[1], reverse=True)

    def _knn(self, docs, evaluator, knn) -> list[tuple[str, float, int | None]]:
        query_vector = np.asarray(knn["query_vector"], dtype=np.float32)
        query_norm = float(np.linalg.norm(query_vector))
        filters = _as_list(knn.get("filter"))

        scored = []
        for doc_id, source in docs.items():
            embedding = source.get("embedding")
            if not embedding:
                continue
            if any(evaluator.score(clause, doc_id, source) is None for clause in filters):
                continue
            vector = np.asarray(embedding, dtype=np.float32)
            norm = float(np.linalg.norm(vector))
            if norm == 0.0 or query_norm == 0.0:
                similarity = 0.0
            else:
                similarity = float(np.dot(query_vector, vector)) / (norm * query_norm)
            # Elasticsearch's cosine score
            scored.append((doc_id, (1.0 + similarity) / 2.0, None))

        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[: knn.get("k", 10)]

    def _retrieve(self, docs, evaluator, retriever) -> list[tuple[str, float, int | None]]:
        if "standard" in retriever:
            return self._query(docs, evaluator, retriever["standard"].get("query", {"match_all": {}}))
        if "knn" in retriever:
            return self._knn(docs, evaluator, retriever["knn"])
        if "rrf" in retriever:
            rrf = retriever["rrf"]
            channels = [self._retrieve(docs, evaluator, sub) for sub in rrf["retrievers"]]
            fused = reciprocal_rank_fusion(
                [[doc_id for doc_id, _, _ in channel] for channel in channels],
                rank_constant=rrf.get("rank_constant", 60),
                window_size=rrf.get("rank_window_size", 100),
            )
            return [(doc_id, score, rank) for rank, (doc_id, score) in enumerate(fused, start=1)]
        raise ValueError(f"Unsupported retriever: {list(retriever)}")
