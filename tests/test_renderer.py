"""
Tests for the Markdown+LaTeX renderer.
"""

from latex_edit.render.markdown import (
    CommandKind,
    LatexExpressionRenderer,
    classify_command,
    render_latex_expression,
    render_latex_markdown,
    split_math_segments,
    tokenize_blocks,
    BlockKind,
)


def test_heading_with_inline_math():
    html = render_latex_markdown("# Hello $\\alpha$")

    assert html == (
        '<h1>Hello <span class="math-inline"><span class="latex-expression">'
        '<span class="latex-symbol">α</span></span></span></h1>'
    )


def test_fraction():
    html = render_latex_expression("\\frac{1}{2}")

    assert '<span class="latex-frac-num"><span class="latex-expression">1</span></span>' in html
    assert '<span class="latex-frac-line"></span>' in html
    assert '<span class="latex-frac-denom"><span class="latex-expression">2</span></span>' in html


def test_fraction_with_missing_argument_is_raw():
    assert render_latex_expression("\\frac{1}") == '<span class="latex-expression">\\frac{1}</span>'


def test_square_and_nth_roots():
    assert '<span class="latex-sqrt">' in render_latex_expression("\\sqrt{x}")

    html = render_latex_expression("\\sqrt[3]{x}")
    assert '<span class="latex-root">' in html
    assert '<sup class="latex-root-index"><span class="latex-expression">3</span></sup>' in html


def test_scripts():
    assert render_latex_expression("x^2") == (
        '<span class="latex-expression">x<sup class="latex-superscript">'
        '<span class="latex-expression">2</span></sup></span>'
    )
    assert '<sub class="latex-subscript"><span class="latex-expression">ij</span></sub>' in (
        render_latex_expression("a_{ij}")
    )


def test_operator_with_limits():
    html = render_latex_expression("\\sum{i=0}{n}")

    assert html.index("latex-upper-limit") < html.index("∑") < html.index("latex-lower-limit")


def test_operator_without_limits():
    html = render_latex_expression("\\int")

    assert '<span class="latex-operator-symbol">∫</span>' in html
    assert "latex-lower-limit" not in html


def test_limit():
    assert render_latex_expression("\\lim") == '<span class="latex-expression">lim</span>'
    assert '<span class="latex-limit">lim' in render_latex_expression("\\lim{x}")


def test_unknown_command_is_verbatim():
    assert "\\mathbb{R}" in render_latex_expression("\\mathbb{R}")


def test_empty_expression():
    assert render_latex_expression("") == ""


def test_every_command_kind_has_a_renderer():
    assert set(LatexExpressionRenderer.RENDERERS) == set(CommandKind)


def test_classify_command():
    assert classify_command("frac") == CommandKind.FRACTION
    assert classify_command("sqrt") == CommandKind.SQRT
    assert classify_command("sum") == CommandKind.OPERATOR
    assert classify_command("lim") == CommandKind.LIMIT
    assert classify_command("Omega") == CommandKind.SYMBOL
    assert classify_command("foo") == CommandKind.UNKNOWN


def test_lists_close_on_type_change():
    html = render_latex_markdown("- a\n- b\n1. c")

    assert html == "<ul><li>a</li><li>b</li></ul><ol><li>c</li></ol>"


def test_blank_line_becomes_break():
    assert render_latex_markdown("a\n\nb") == "<p>a</p><br><p>b</p>"


def test_block_tokenizer():
    tokens = tokenize_blocks("## Title\n\n- item\n2. step\ntext")

    assert [token.kind for token in tokens] == [
        BlockKind.HEADING,
        BlockKind.LINE_BREAK,
        BlockKind.LIST_ITEM,
        BlockKind.ORDERED_LIST_ITEM,
        BlockKind.PARAGRAPH,
    ]
    assert tokens[0].level == 2


def test_inline_markdown():
    html = render_latex_markdown("**b** *i* `c` [t](http://x)")

    assert html == '<p><strong>b</strong> <em>i</em> <code>c</code> <a href="http://x">t</a></p>'


def test_markdown_does_not_touch_math():
    html = render_latex_markdown("$a_1 b_2$")

    assert "<em>" not in html
    assert html.count("latex-subscript") == 2


def test_display_math():
    assert render_latex_markdown("$$x$$") == (
        '<p><div class="math-display"><span class="latex-expression">x</span></div></p>'
    )


def test_escaped_and_unclosed_dollars_stay_literal():
    assert "math-inline" not in render_latex_markdown("costs \\$5 and \\$6")
    assert render_latex_markdown("price $5") == "<p>price $5</p>"


def test_split_math_segments():
    assert split_math_segments("a $x$ b $$y$$") == [
        ("text", "a "),
        ("math-inline", "x"),
        ("text", " b "),
        ("math-display", "y"),
    ]


def test_html_is_not_escaped_by_default():
    assert "<b>" in render_latex_markdown("<b>hi</b>")


def test_html_escaping_option():
    html = render_latex_markdown("<b>$x<y$</b>", escape_html=True)

    assert "<b>" not in html
    assert "&lt;b&gt;" in html
    assert "x&lt;y" in html
