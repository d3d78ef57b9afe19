"""
Tests for the command insertion engine and its option models.
"""

import pytest
from pydantic import ValidationError

from latex_edit.core.positioning import is_valid_position
from latex_edit.editing.engine import (
    CommandInsertionEngine,
    argument_offsets,
    build_command_string,
    build_matrix,
)
from latex_edit.editing.options import ArgumentTarget, InsertionOptions, InsertionRequest


@pytest.fixture
def engine():
    return CommandInsertionEngine()


# Building blocks

def test_build_command_string_pads_to_two_arguments():
    assert build_command_string("frac", []) == "\\frac{}{}"
    assert build_command_string("frac", ["a"]) == "\\frac{a}{}"
    assert build_command_string("color", ["1", "2", "3", ""]) == "\\color{1}{2}{3}{}"


def test_argument_offsets_ignore_nested_braces():
    assert argument_offsets("\\frac{\\sqrt{x}}{}") == [6, 16]
    assert argument_offsets("\\alpha") == []


def test_argument_target_resolution():
    assert ArgumentTarget.first().resolve(3) == 0
    assert ArgumentTarget.last().resolve(3) == 2
    assert ArgumentTarget.at(-1).resolve(3) == 2
    assert ArgumentTarget.at(-5).resolve(3) == 0
    assert ArgumentTarget.at(7).resolve(2) == 1
    assert ArgumentTarget.first().resolve(0) is None


def test_options_collapse_into_one_target():
    assert InsertionOptions().argument_target() == ArgumentTarget.first()
    assert InsertionOptions(position_in_first_arg=False).argument_target() == ArgumentTarget.at(1)
    assert InsertionOptions(
        position_in_first_arg=False, cursor_argument_index=2
    ).argument_target() == ArgumentTarget.at(2)
    assert InsertionOptions().argument_target(default=ArgumentTarget.last()) == ArgumentTarget.last()


def test_options_are_validated():
    with pytest.raises(ValidationError):
        InsertionOptions(cursor_argument_index="second")
    with pytest.raises(ValidationError):
        InsertionOptions(cursor_index=1)


def test_options_with_defaults_keeps_explicit_values():
    options = InsertionOptions(cursor_argument_index=0).with_defaults(cursor_argument_index=3)

    assert options.cursor_argument_index == 0
    assert InsertionOptions().with_defaults(cursor_argument_index=3).cursor_argument_index == 3


def test_request_strips_leading_backslash():
    assert InsertionRequest(command_name="\\frac").command_name == "frac"
    with pytest.raises(ValidationError):
        InsertionRequest(command_name="\\")


# insert_command

def test_insert_command_on_empty_text(engine):
    result = engine.insert_command("", 0, "frac")

    assert result.new_text == "$\\frac{}{}$"
    assert result.new_cursor_position == 7


def test_insert_command_inside_math_adds_no_delimiters(engine):
    result = engine.insert_command("$ab$", 2, "frac")

    assert result.new_text == "$a\\frac{}{}b$"
    assert result.new_cursor_position == 8


def test_insert_command_before_closing_delimiter(engine):
    result = engine.insert_command("$x$", 2, "frac")

    assert result.new_text == "$x\\frac{}{}$"
    assert result.new_cursor_position == 8


def test_insert_command_without_math_wrap(engine):
    result = engine.insert_command("x", 1, "frac", options=InsertionOptions(wrap_with_math=False))

    assert result.new_text == "x\\frac{}{}"
    assert result.new_cursor_position == 7


def test_insert_command_at_start_of_math_document(engine):
    """At offset 0 of a document opening with math, insert inside the span."""
    result = engine.insert_command("$x$", 0, "frac")

    assert result.new_text == "$\\frac{}{}x$"
    assert result.new_cursor_position == 7


def test_insert_command_second_argument(engine):
    result = engine.insert_command("", 0, "frac", options=InsertionOptions(position_in_first_arg=False))

    assert result.new_cursor_position == 9


def test_insert_command_clamps_argument_index(engine):
    result = engine.insert_command("", 0, "frac", options=InsertionOptions(cursor_argument_index=10))

    assert result.new_cursor_position == 9


def test_insert_command_negative_argument_index(engine):
    result = engine.insert_command(
        "", 0, "color", ["255", "0", "0", ""], InsertionOptions(cursor_argument_index=-1)
    )

    assert result.new_text == "$\\color{255}{0}{0}{}$"
    assert result.new_cursor_position == 19


def test_insert_command_repairs_invalid_position(engine):
    result = engine.insert_command("\\alpha", 3, "beta")

    assert result.new_text == "\\alpha$\\beta{}{}$"
    assert result.new_cursor_position == 13


def test_insert_command_clamps_out_of_range_position(engine):
    result = engine.insert_command("ab", 99, "frac")

    assert result.new_text == "ab$\\frac{}{}$"
    assert result.new_cursor_position == 9


def test_insert_command_stays_inside_argument(engine):
    text = "\\text{ab}"
    result = engine.insert_command(text, 7, "frac")

    assert result.new_text == "\\text{a$\\frac{}{}$b}"
    assert result.new_cursor_position == 14
    # Every new $ lies between the argument's braces
    dollars = [i for i, char in enumerate(result.new_text) if char == "$"]
    assert all(5 < i < result.new_text.rindex("}") for i in dollars)


# Text absorption

def test_absorbs_word_before_cursor(engine):
    result = engine.insert_command_with_text_before_cursor("x+1", 3, "frac")

    assert result.new_text == "$\\frac{x+1}{}$"
    assert result.new_cursor_position == 12


def test_absorbs_parenthesized_expression(engine):
    result = engine.insert_command_with_text_before_cursor("a (x+1)", 7, "frac")

    assert result.new_text == "a $\\frac{(x+1)}{}$"
    assert result.new_cursor_position == 16


def test_no_absorption_after_whitespace(engine):
    result = engine.insert_command_with_text_before_cursor("x ", 2, "frac")

    assert result.new_text == "x $\\frac{}{}$"
    assert result.new_cursor_position == 9


def test_no_absorption_after_opening_delimiter(engine):
    result = engine.insert_command_with_text_before_cursor("$x$", 1, "frac")

    assert result.new_text == "$\\frac{}{}x$"
    assert result.new_cursor_position == 7


def test_no_absorption_across_math_delimiters(engine):
    result = engine.insert_command_with_text_before_cursor("$a$", 3, "frac")

    assert result.new_text == "$a$$\\frac{}{}$"
    assert result.new_cursor_position == 10


def test_apply_honours_use_text_before_cursor(engine):
    request = InsertionRequest(
        command_name="frac", options=InsertionOptions(use_text_before_cursor=True)
    )

    assert engine.apply("y", 1, request).new_text == "$\\frac{y}{}$"
    assert engine.apply("y", 1, InsertionRequest(command_name="frac")).new_text == "y$\\frac{}{}$"


def test_insert_command_with_wrapper(engine):
    result = engine.insert_command_with_wrapper("a b c", 2, 3, "frac", "b")

    assert result.new_text == "a $\\frac{b}{}$ c"
    assert result.new_cursor_position == 12


def test_wrapper_accepts_reversed_range(engine):
    assert engine.insert_command_with_wrapper("a b c", 3, 2, "frac", "b").new_text == "a $\\frac{b}{}$ c"


def test_wrapper_repairs_offset_inside_command_name(engine):
    """An offset inside ``\\alpha`` moves past the name instead of splitting it."""
    result = engine.insert_command_with_wrapper("\\alpha", 2, 2, "frac", "")

    assert result.new_text == "\\alpha$\\frac{}{}$"
    assert result.new_cursor_position == 15
    assert is_valid_position(result.new_text, result.new_cursor_position)


def test_wrapper_repairs_offset_inside_display_delimiter(engine):
    result = engine.insert_command_with_wrapper("$$x$$", 1, 1, "frac", "")

    assert result.new_text == "$$\\frac{}{}x$$"
    assert result.new_cursor_position == 10
    assert is_valid_position(result.new_text, result.new_cursor_position)


def test_wrapper_reslices_repaired_range(engine):
    result = engine.insert_command_with_wrapper("\\alpha b", 3, 8, "frac", "lpha b")

    assert result.new_text == "\\alpha$\\frac{ b}{}$"
    assert "\\alpha" in result.new_text


# Fractions

def test_fraction_uses_preceding_command_as_numerator(engine):
    result = engine.insert_fraction("$\\alpha$", 7)

    assert result.new_text == "$\\frac{\\alpha}{}$"
    assert result.new_cursor_position == 15
    assert result.new_text[result.new_cursor_position - 1:result.new_cursor_position + 1] == "{}"


def test_fraction_after_command_outside_math(engine):
    result = engine.insert_fraction("\\beta", 5)

    assert result.new_text == "$\\frac{\\beta}{}$"
    assert result.new_cursor_position == 14


def test_fraction_absorbs_text_in_math(engine):
    result = engine.insert_fraction("$ab$", 3)

    assert result.new_text == "$\\frac{ab}{}$"
    assert result.new_cursor_position == 11


def test_fraction_on_empty_text(engine):
    result = engine.insert_fraction("", 0)

    assert result.new_text == "$\\frac{}{}$"
    assert result.new_cursor_position == 7


def test_fraction_inside_argument_stays_inside(engine):
    result = engine.insert_fraction("\\sqrt{x}", 7)

    assert result.new_text == "\\sqrt{$\\frac{x}{}$}"
    assert result.new_cursor_position == 16


# Roots and scripts

def test_sqrt_on_empty_text(engine):
    result = engine.insert_sqrt("", 0)

    assert result.new_text == "$\\sqrt{}$"
    assert result.new_cursor_position == 7


def test_sqrt_absorbs_radicand(engine):
    result = engine.insert_sqrt("$x$", 2)

    assert result.new_text == "$\\sqrt{x}$"
    assert result.new_cursor_position == 9


def test_sqrt_honours_explicit_argument_index(engine):
    """With an explicit target the cursor goes into the radicand, not after it."""
    result = engine.insert_sqrt("$x$", 2, InsertionOptions(cursor_argument_index=0))

    assert result.new_text == "$\\sqrt{x}$"
    assert result.new_cursor_position == 7


def test_nth_root(engine):
    result = engine.insert_sqrt("", 0, index="3")

    assert result.new_text == "$\\sqrt[3]{}$"
    assert result.new_cursor_position == 10


def test_subscript_absorbs_base(engine):
    result = engine.insert_subscript("x", 1)

    assert result.new_text == "$x_{}$"
    assert result.new_cursor_position == 4


def test_superscript_in_math(engine):
    result = engine.insert_superscript("$x$", 2)

    assert result.new_text == "$x^{}$"
    assert result.new_cursor_position == 4


def test_subscript_without_base(engine):
    result = engine.insert_subscript("a ", 2)

    assert result.new_text == "a $_{}$"
    assert result.new_cursor_position == 5


# Matrix and colour

def test_matrix_on_empty_text(engine):
    result = engine.insert_matrix("", 0, 2, 2)

    assert result.new_text == "$\\begin{pmatrix}\n  &   \\\\\n  &  \n\\end{pmatrix}$"
    assert result.new_cursor_position == 17
    assert result.new_text[result.new_cursor_position - 1] == "\n"


def test_matrix_in_math_is_not_wrapped(engine):
    result = engine.insert_matrix("$ab$", 2, 1, 1)

    assert result.new_text == "$a\\begin{pmatrix}\n \n\\end{pmatrix}b$"


def test_matrix_dimensions_are_clamped():
    assert build_matrix(0, -3) == "\\begin{pmatrix}\n \n\\end{pmatrix}"


def test_color_defaults_to_content_argument(engine):
    result = engine.insert_color("", 0)

    assert result.new_text == "$\\color{255}{0}{0}{}$"
    assert result.new_cursor_position == 19


def test_color_with_first_component_target(engine):
    result = engine.insert_color("", 0, InsertionOptions(cursor_argument_index=0))

    assert result.new_cursor_position == 8


# Properties

OPERATIONS = [
    lambda e, t, p: e.insert_command(t, p, "frac"),
    lambda e, t, p: e.insert_command_with_text_before_cursor(t, p, "frac"),
    lambda e, t, p: e.insert_fraction(t, p),
    lambda e, t, p: e.insert_sqrt(t, p),
    lambda e, t, p: e.insert_subscript(t, p),
    lambda e, t, p: e.insert_superscript(t, p),
    lambda e, t, p: e.insert_matrix(t, p),
    lambda e, t, p: e.insert_color(t, p),
]

DOCUMENTS = ["", "x", "a b", "$x+y$", "\\alpha", "\\frac{a}{b} c", "$\\sqrt{x}$ and (y)"]


@pytest.mark.parametrize("operation", OPERATIONS)
def test_insertions_keep_braces_balanced(engine, operation):
    for text in DOCUMENTS:
        for position in range(len(text) + 1):
            result = operation(engine, text, position)
            assert result.new_text.count("{") == result.new_text.count("}")
            assert 0 <= result.new_cursor_position <= len(result.new_text)


@pytest.mark.parametrize("operation", OPERATIONS)
def test_insertions_in_math_add_no_delimiters(engine, operation):
    text = "$a+b$"
    for position in (2, 3):
        result = operation(engine, text, position)
        assert result.new_text.count("$") == 2
