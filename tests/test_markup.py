"""Markup to flowable conversion."""

import pytest
from reportlab.platypus import HRFlowable, Image as RLImage, Paragraph

from markup import PX_TO_PT, css_length_to_pt, markup_to_flowables, parse_style


def paragraphs(flowables):
    return [f for f in flowables if isinstance(f, Paragraph)]


class TestCss:
    def test_parse_style(self):
        assert parse_style("font-size: 12px; COLOR:red;;") == {"font-size": "12px", "color": "red"}

    @pytest.mark.parametrize(
        "value,expected",
        [("16px", 12.0), ("10pt", 10.0), ("2em", 18.0), ("50%", 50.0), ("bogus", None), (None, None)],
    )
    def test_lengths(self, value, expected):
        assert css_length_to_pt(value, base=9.0, percent_of=100.0) == expected


class TestBlocks:
    def test_heading_paragraph_rule(self):
        out = markup_to_flowables("<h3>Legend</h3><p>Plan <b>north</b></p><hr/>", max_width=150)

        assert [type(f) for f in out] == [Paragraph, Paragraph, HRFlowable]
        assert out[0].style.fontName == "Helvetica-Bold"
        assert out[0].style.fontSize == 12.0
        assert out[1].style.fontName == "Helvetica"
        assert out[1].getPlainText() == "Plan north"

    def test_inline_font_size_inherits(self):
        out = paragraphs(markup_to_flowables('<div style="font-size: 16px"><p>big</p></div>', max_width=150))
        assert out[0].style.fontSize == pytest.approx(16 * PX_TO_PT)

    def test_text_align_and_weight(self):
        out = paragraphs(
            markup_to_flowables('<p style="text-align: center; font-weight: 700">Mid</p>', max_width=150)
        )
        assert out[0].style.alignment == 1
        assert out[0].style.fontName == "Helvetica-Bold"

    def test_lists_are_bulleted_and_numbered(self):
        out = paragraphs(markup_to_flowables("<ul><li>one</li></ul><ol><li>a</li><li>b</li></ol>", max_width=150))
        texts = [p.getPlainText() for p in out]
        assert texts[0].startswith("•")
        assert texts[1].startswith("1.")
        assert texts[2].startswith("2.")

    def test_unclosed_inline_tags_are_balanced(self):
        out = paragraphs(markup_to_flowables("<p><b>bold<p>still bold</p>", max_width=150))
        assert [p.getPlainText() for p in out] == ["bold", "still bold"]

    def test_coloured_span(self):
        out = paragraphs(markup_to_flowables('<p><span style="color: #ff0000">alert</span></p>', max_width=150))
        assert out[0].getPlainText() == "alert"

    def test_empty_markup(self):
        assert markup_to_flowables("", max_width=100) == []
        assert markup_to_flowables("<div></div>", max_width=100) == []


class TestImages:
    def test_css_width_keeps_aspect(self, logo_png):
        out = markup_to_flowables(f'<img src="{logo_png}" style="width: 80px"/>', max_width=150)
        img = out[0]
        assert isinstance(img, RLImage)
        assert img.drawWidth == pytest.approx(60.0)
        assert img.drawHeight == pytest.approx(20.0)

    def test_wide_image_clamped_to_column(self, logo_png):
        out = markup_to_flowables(f'<img src="{logo_png}" width="1000px"/>', max_width=100)
        assert out[0].drawWidth == pytest.approx(100.0)

    def test_unreadable_image_is_skipped(self, tmp_path):
        assert markup_to_flowables(f'<img src="{tmp_path / "missing.png"}"/>', max_width=100) == []
