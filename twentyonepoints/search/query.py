"""
Query-string parsing for the search index.

Supports the commonly used part of the Lucene classic syntax, which is
what ``/_search`` endpoints receive from clients:

    jdoe                    term in any field
    login:jdoe              term in one field (camelCase or snake_case)
    "John Doe"              phrase
    jd*  j?oe               wildcards
    *   *:*                 match all
    a AND b, a && b         conjunction
    a OR b, a || b, a b     disjunction (default operator is OR)
    NOT a, !a, -a           prohibited clause
    +a                      required clause
    (a OR b) AND c          grouping
    login:(jdoe OR admin)   field group

A term that analyses to more than one token matches as a phrase, so
``email:jdoe@example.com`` works without quoting.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Pattern

from twentyonepoints.data.entity import to_snake_case
from twentyonepoints.exceptions import SearchQueryException

TOKEN_PATTERN = re.compile(r"\w+")

OPERATOR_WORDS = {"AND", "OR", "NOT"}


def analyze(text: str) -> List[str]:
    """Lower-case word tokens of ``text``."""
    return [token.lower() for token in TOKEN_PATTERN.findall(text)]


class Document:
    """An indexed entity: its analysed fields plus the stored source."""

    def __init__(self, doc_id, fields: Dict[str, List[str]], source):
        self.id = doc_id
        self.fields = fields
        self.source = source

    def field_tokens(self, field_name: Optional[str]) -> List[List[str]]:
        if field_name is None:
            return list(self.fields.values())
        tokens = self.fields.get(field_name)
        return [tokens] if tokens is not None else []


class Query:
    def match(self, doc: Document) -> Optional[float]:
        """Score of ``doc`` against the query, or None if it does not match."""
        raise NotImplementedError


class MatchAllQuery(Query):
    def match(self, doc: Document) -> Optional[float]:
        return 1.0

    def __repr__(self):
        return "MatchAllQuery()"


class MatchNoneQuery(Query):
    def match(self, doc: Document) -> Optional[float]:
        return None

    def __repr__(self):
        return "MatchNoneQuery()"


@dataclass
class TermQuery(Query):
    field: Optional[str]
    token: str

    def match(self, doc: Document) -> Optional[float]:
        for tokens in doc.field_tokens(self.field):
            if self.token in tokens:
                return 1.0
        return None


@dataclass
class WildcardQuery(Query):
    field: Optional[str]
    pattern: Pattern

    def match(self, doc: Document) -> Optional[float]:
        for tokens in doc.field_tokens(self.field):
            if any(self.pattern.fullmatch(token) for token in tokens):
                return 1.0
        return None


@dataclass
class PhraseQuery(Query):
    field: Optional[str]
    tokens: List[str]

    def match(self, doc: Document) -> Optional[float]:
        width = len(self.tokens)
        for tokens in doc.field_tokens(self.field):
            for start in range(len(tokens) - width + 1):
                if tokens[start : start + width] == self.tokens:
                    return float(width)
        return None


@dataclass
class BoolQuery(Query):
    must: List[Query] = field(default_factory=list)
    should: List[Query] = field(default_factory=list)
    must_not: List[Query] = field(default_factory=list)

    def match(self, doc: Document) -> Optional[float]:
        score = 0.0
        for query in self.must:
            clause_score = query.match(doc)
            if clause_score is None:
                return None
            score += clause_score

        for query in self.must_not:
            if query.match(doc) is not None:
                return None

        if self.should:
            matched = [s for s in (q.match(doc) for q in self.should) if s is not None]
            if not matched and not self.must:
                return None
            score += sum(matched)
        elif not self.must:
            # Purely negative queries match everything not excluded
            score += 1.0

        return score


class TokenType(Enum):
    TERM = "term"
    PHRASE = "phrase"
    FIELD = "field"
    LPAREN = "("
    RPAREN = ")"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    PLUS = "+"
    MINUS = "-"


@dataclass
class Token:
    type: TokenType
    value: str = ""


_SINGLE_CHAR_TOKENS = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "!": TokenType.NOT,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
}

_TERM_BREAKS = set(' \t\r\n()":')


def tokenize(query: str) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    n = len(query)

    while i < n:
        c = query[i]

        if c.isspace():
            i += 1
            continue

        if query.startswith("&&", i):
            tokens.append(Token(TokenType.AND))
            i += 2
            continue
        if query.startswith("||", i):
            tokens.append(Token(TokenType.OR))
            i += 2
            continue

        if c in _SINGLE_CHAR_TOKENS:
            token_type = _SINGLE_CHAR_TOKENS[c]
            if token_type in (TokenType.PLUS, TokenType.MINUS, TokenType.NOT):
                if i + 1 >= n or query[i + 1].isspace():
                    raise SearchQueryException(query, f"dangling '{c}' at position {i}")
            tokens.append(Token(token_type))
            i += 1
            continue

        if c == '"':
            j = i + 1
            chars = []
            while j < n and query[j] != '"':
                if query[j] == "\\" and j + 1 < n:
                    j += 1
                chars.append(query[j])
                j += 1
            if j >= n:
                raise SearchQueryException(query, "unterminated phrase")
            tokens.append(Token(TokenType.PHRASE, "".join(chars)))
            i = j + 1
            continue

        # Bare word; escapes are kept so wildcards can tell '\*' from '*'
        j = i
        raw = []
        while j < n and query[j] not in _TERM_BREAKS:
            if query[j] == "\\":
                if j + 1 >= n:
                    raise SearchQueryException(query, "trailing escape character")
                raw.append(query[j : j + 2])
                j += 2
                continue
            raw.append(query[j])
            j += 1
        word = "".join(raw)

        if j < n and query[j] == ":":
            if not word:
                raise SearchQueryException(query, f"missing field name at position {j}")
            tokens.append(Token(TokenType.FIELD, word))
            i = j + 1
            continue

        if not word:
            raise SearchQueryException(query, f"unexpected character at position {j}")
        if word in OPERATOR_WORDS:
            tokens.append(Token(TokenType(word)))
        else:
            tokens.append(Token(TokenType.TERM, word))
        i = j

    return tokens


class Occur(Enum):
    MUST = "must"
    SHOULD = "should"
    MUST_NOT = "must_not"


class _Parser:
    def __init__(self, query: str, tokens: List[Token]):
        self.query = query
        self.tokens = tokens
        self.pos = 0

    def error(self, reason: str) -> SearchQueryException:
        return SearchQueryException(self.query, reason)

    def peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def parse(self) -> Query:
        query = self.parse_clauses(field_name=None)
        if self.peek() is not None:
            raise self.error("unbalanced ')'")
        return query

    def parse_clauses(self, field_name: Optional[str]) -> Query:
        clauses: List[List] = []

        while True:
            token = self.peek()
            if token is None or token.type == TokenType.RPAREN:
                break

            conjunction = None
            if token.type in (TokenType.AND, TokenType.OR):
                if not clauses:
                    raise self.error(f"'{token.type.value}' without a left operand")
                conjunction = self.advance().type
                token = self.peek()
                if token is None or token.type == TokenType.RPAREN:
                    raise self.error(f"'{conjunction.value}' without a right operand")

            modifier = None
            if token.type in (TokenType.NOT, TokenType.MINUS):
                modifier = Occur.MUST_NOT
                self.advance()
            elif token.type == TokenType.PLUS:
                modifier = Occur.MUST
                self.advance()

            query = self.parse_clause(field_name)

            # Conjunctions rewrite the previous clause the way Lucene does
            if clauses and conjunction == TokenType.AND:
                if clauses[-1][0] == Occur.SHOULD:
                    clauses[-1][0] = Occur.MUST
            if clauses and conjunction == TokenType.OR:
                if clauses[-1][0] != Occur.MUST_NOT:
                    clauses[-1][0] = Occur.SHOULD

            if modifier == Occur.MUST_NOT:
                occur = Occur.MUST_NOT
            elif modifier == Occur.MUST or conjunction == TokenType.AND:
                occur = Occur.MUST
            else:
                occur = Occur.SHOULD
            clauses.append([occur, query])

        if not clauses:
            raise self.error("empty expression")

        if len(clauses) == 1 and clauses[0][0] != Occur.MUST_NOT:
            return clauses[0][1]

        return BoolQuery(
            must=[q for occur, q in clauses if occur == Occur.MUST],
            should=[q for occur, q in clauses if occur == Occur.SHOULD],
            must_not=[q for occur, q in clauses if occur == Occur.MUST_NOT],
        )

    def parse_clause(self, field_name: Optional[str]) -> Query:
        token = self.peek()
        if token is None:
            raise self.error("unexpected end of query")
        self.advance()

        if token.type == TokenType.FIELD:
            next_token = self.peek()
            if next_token is None or next_token.type not in (
                TokenType.TERM,
                TokenType.PHRASE,
                TokenType.LPAREN,
            ):
                raise self.error(f"missing value for field '{token.value}'")
            target = None if token.value == "*" else to_snake_case(token.value)
            return self.parse_clause(target)

        if token.type == TokenType.LPAREN:
            query = self.parse_clauses(field_name)
            closing = self.peek()
            if closing is None or closing.type != TokenType.RPAREN:
                raise self.error("unbalanced '('")
            self.advance()
            return query

        if token.type == TokenType.TERM:
            return term_query(field_name, token.value)

        if token.type == TokenType.PHRASE:
            return phrase_query(field_name, token.value)

        raise self.error(f"unexpected '{token.type.value}'")


def _decode_term(raw: str):
    """Resolve escapes; returns (literal text, wildcard regex or None)."""
    literal = []
    pattern = []
    has_wildcard = False
    i = 0
    while i < len(raw):
        c = raw[i]
        if c == "\\":
            escaped = raw[i + 1]
            literal.append(escaped)
            pattern.append(re.escape(escaped.lower()))
            i += 2
            continue
        if c == "*":
            has_wildcard = True
            pattern.append(".*")
        elif c == "?":
            has_wildcard = True
            pattern.append(".")
        else:
            literal.append(c)
            pattern.append(re.escape(c.lower()))
        i += 1

    regex = re.compile("".join(pattern)) if has_wildcard else None
    return "".join(literal), regex


def term_query(field_name: Optional[str], raw: str) -> Query:
    text, wildcard = _decode_term(raw)
    if wildcard is not None:
        if raw == "*" and field_name is None:
            return MatchAllQuery()
        return WildcardQuery(field_name, wildcard)
    return phrase_query(field_name, text)


def phrase_query(field_name: Optional[str], text: str) -> Query:
    tokens = analyze(text)
    if not tokens:
        return MatchNoneQuery()
    if len(tokens) == 1:
        return TermQuery(field_name, tokens[0])
    return PhraseQuery(field_name, tokens)


def parse_query(query: str) -> Query:
    """Parse a query string, raising SearchQueryException when malformed."""
    if query is None or not query.strip():
        raise SearchQueryException(query or "", "query must not be blank")
    return _Parser(query, tokenize(query)).parse()
