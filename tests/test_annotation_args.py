from routedoc.extractors.nestjs.annotations import (
    clean_doc_comment,
    extract_description,
    extract_summary,
    parse_property_doc,
)


def test_property_doc_description_and_string_example():
    doc = parse_property_doc("{ description: 'User email', example: 'a@b.c' }")
    assert doc.description == "User email"
    assert doc.has_example
    assert doc.example == "a@b.c"
    assert doc.required_false is False


def test_property_doc_literal_examples():
    assert parse_property_doc("{ example: true }").example is True
    assert parse_property_doc("{ example: false }").example is False
    assert parse_property_doc("{ example: 42 }").example == 42
    assert parse_property_doc("{ example: -1.5 }").example == -1.5

    null_doc = parse_property_doc("{ example: null }")
    assert null_doc.has_example
    assert null_doc.example is None


def test_property_doc_without_example():
    doc = parse_property_doc("{ description: \"Name\" }")
    assert doc.description == "Name"
    assert doc.has_example is False
    assert doc.example is None


def test_property_doc_required_false():
    doc = parse_property_doc("{ required: false, description: 'x' }")
    assert doc.required_false is True
    assert parse_property_doc("{ required: true }").required_false is False


def test_property_doc_empty_text():
    doc = parse_property_doc("")
    assert doc.description == ""
    assert doc.has_example is False


def test_description_keeps_other_quote_kind_and_escapes():
    assert extract_description("{ description: \"it's fine\" }") == "it's fine"
    assert extract_description("{ description: 'it\\'s fine' }") == "it's fine"


def test_description_spanning_lines():
    text = """{
      description: `first line
      second line`,
    }"""
    assert extract_description(text).startswith("first line")


def test_summary_keyed_and_fallback():
    assert extract_summary("{ summary: 'List users', description: 'x' }") == "List users"
    assert extract_summary("'List users'") == "List users"
    assert extract_summary("") == ""


def test_clean_doc_comment_strips_markers():
    raw = """/**
     * Returns one user.
     *
     * Throws when missing.
     */"""
    assert clean_doc_comment(raw) == "Returns one user.\n\nThrows when missing."
    assert clean_doc_comment("/** single */") == "single"
    assert clean_doc_comment("") == ""
