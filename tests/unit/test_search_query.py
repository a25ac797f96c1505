"""
Tests for the query-string parser behind the /_search endpoints.
"""

import pytest

from twentyonepoints.exceptions import SearchQueryException
from twentyonepoints.search.query import (
    BoolQuery,
    Document,
    MatchAllQuery,
    PhraseQuery,
    TermQuery,
    TokenType,
    WildcardQuery,
    analyze,
    parse_query,
    tokenize,
)


def make_document(doc_id=1, **fields):
    return Document(doc_id, {name: analyze(value) for name, value in fields.items()}, None)


JOHN = make_document(
    1, login="jdoe", first_name="John", last_name="Doe", email="jdoe@example.com"
)
JANE = make_document(
    2, login="jane", first_name="Jane", last_name="Roe", email="jane@example.org"
)


def matches(query_string, document):
    return parse_query(query_string).match(document) is not None


class TestAnalyze:
    def test_lowercases_word_tokens(self):
        assert analyze("John DOE") == ["john", "doe"]

    def test_splits_on_punctuation(self):
        assert analyze("jdoe@example.com") == ["jdoe", "example", "com"]


class TestTokenize:
    def test_operators(self):
        types = [t.type for t in tokenize("a && b || !c")]
        assert types == [
            TokenType.TERM,
            TokenType.AND,
            TokenType.TERM,
            TokenType.OR,
            TokenType.NOT,
            TokenType.TERM,
        ]

    def test_field_and_phrase(self):
        tokens = tokenize('lastName:"van der Berg"')
        assert tokens[0].type == TokenType.FIELD
        assert tokens[0].value == "lastName"
        assert tokens[1].type == TokenType.PHRASE
        assert tokens[1].value == "van der Berg"

    def test_lowercase_operator_words_are_terms(self):
        assert tokenize("and")[0].type == TokenType.TERM


class TestParseQuery:
    """Tests for the queries the parser builds."""

    def test_single_term(self):
        assert parse_query("jdoe") == TermQuery(None, "jdoe")

    def test_fielded_term_uses_snake_case(self):
        assert parse_query("firstName:John") == TermQuery("first_name", "john")

    def test_match_all(self):
        assert isinstance(parse_query("*"), MatchAllQuery)
        assert isinstance(parse_query("*:*"), MatchAllQuery)

    def test_wildcard(self):
        query = parse_query("jd*")
        assert isinstance(query, WildcardQuery)
        assert query.pattern.fullmatch("jdoe")

    def test_multi_token_term_becomes_phrase(self):
        assert parse_query("email:jdoe@example.com") == PhraseQuery(
            "email", ["jdoe", "example", "com"]
        )

    def test_default_operator_is_or(self):
        query = parse_query("jdoe jane")
        assert isinstance(query, BoolQuery)
        assert len(query.should) == 2
        assert not query.must

    def test_and_makes_both_clauses_required(self):
        query = parse_query("jdoe AND john")
        assert len(query.must) == 2

    @pytest.mark.parametrize(
        "query",
        [
            "",
            "   ",
            "AND jdoe",
            "jdoe OR",
            "(jdoe",
            "jdoe)",
            '"unterminated',
            "login:",
            "jdoe -",
            "trailing\\",
        ],
    )
    def test_malformed_queries_raise(self, query):
        with pytest.raises(SearchQueryException):
            parse_query(query)

    def test_error_names_the_query(self):
        with pytest.raises(SearchQueryException) as exc_info:
            parse_query("(jdoe")
        assert exc_info.value.query == "(jdoe"
        assert "(jdoe" in str(exc_info.value)


class TestMatching:
    """Tests for evaluating parsed queries against documents."""

    def test_term_in_any_field(self):
        assert matches("doe", JOHN)
        assert not matches("doe", JANE)

    def test_case_insensitive(self):
        assert matches("JOHN", JOHN)

    def test_field_restricts_match(self):
        assert matches("lastName:doe", JOHN)
        assert not matches("firstName:doe", JOHN)

    def test_phrase(self):
        assert matches('"john"', JOHN)
        assert matches("email:jdoe@example.com", JOHN)
        assert not matches("email:jane@example.com", JANE)

    def test_wildcards(self):
        assert matches("ja*", JANE)
        assert matches("j?ne", JANE)
        assert not matches("ja*", JOHN)

    def test_and(self):
        assert matches("john AND doe", JOHN)
        assert not matches("john AND roe", JOHN)
        assert matches("john && doe", JOHN)

    def test_or(self):
        assert matches("john OR jane", JOHN)
        assert matches("john OR jane", JANE)

    def test_not(self):
        assert matches("example NOT jane", JOHN)
        assert not matches("example NOT jane", JANE)
        assert matches("example -org", JOHN)
        assert not matches("example !org", JANE)

    def test_pure_negation_matches_everything_else(self):
        assert matches("-jane", JOHN)
        assert not matches("-jane", JANE)

    def test_required_clause(self):
        assert matches("+doe jane", JOHN)
        assert not matches("+doe jane", JANE)

    def test_grouping(self):
        assert matches("(john OR jane) AND roe", JANE)
        assert not matches("(john OR jane) AND roe", JOHN)

    def test_field_group(self):
        assert matches("login:(jdoe OR admin)", JOHN)
        assert not matches("login:(jdoe OR admin)", JANE)

    def test_unknown_field_matches_nothing(self):
        assert not matches("nickname:jdoe", JOHN)

    def test_escaped_wildcard_is_literal(self):
        assert not matches("jd\\*", JOHN)

    def test_phrase_scores_higher_than_term(self):
        phrase = parse_query('"john doe"')
        term = parse_query("john")
        document = make_document(3, first_name="John", last_name="Doe", bio="john doe")
        assert phrase.match(document) > term.match(document)
