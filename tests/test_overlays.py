"""Side panel / footer rendering and direction icon lookup."""

import pytest

from errors import RenderError
from models import OverlayMetadata
from overlays import EMPTY_PANEL, render_overlays, resolve_facing_image, to_static_markup
from panels import notes_footer, title_block_panel


class TestStaticMarkup:
    def test_drops_event_handlers(self):
        out = to_static_markup('<div onclick="alert(1)" style="color: red">Hi</div>')
        assert "onclick" not in out
        assert 'style="color: red"' in out
        assert "Hi" in out

    def test_drops_scripts_with_content(self):
        out = to_static_markup("<p>a</p><script>steal()</script><p>b</p>")
        assert "steal" not in out
        assert "<p>a</p>" in out and "<p>b</p>" in out

    def test_unwraps_controls_keeping_text(self):
        out = to_static_markup('<button onclick="x()">Rotate</button><a href="javascript:x()">link</a>')
        assert "<button" not in out and "<a" not in out
        assert "Rotate" in out and "link" in out

    def test_input_value_becomes_text(self):
        assert "North" in to_static_markup('<input value="North"/>')

    def test_void_elements_are_self_closed(self):
        out = to_static_markup('<p>a<br>b</p><img src="logo.png">')
        assert "<br />" in out
        assert '<img src="logo.png" />' in out

    def test_text_is_escaped(self):
        assert "&lt;" in to_static_markup("<p>1 &lt; 2</p>")

    def test_empty(self):
        assert to_static_markup(None) == ""


class TestRenderOverlays:
    def test_components_get_their_props(self):
        seen = {}

        def side(**props):
            seen["side"] = props
            return "<div>side</div>"

        def footer(**props):
            seen["footer"] = props
            return "<div>footer</div>"

        out = render_overlays(side, footer, {"title": "Plan"}, "a3", "logo.png")

        assert out.side_html == "<div>side</div>"
        assert out.footer_html == "<div>footer</div>"
        assert seen["side"] == {"data": {"title": "Plan"}, "page_format": "a3"}
        assert seen["footer"] == {"data": {"title": "Plan"}, "page_format": "a3", "logo_ref": "logo.png"}

    def test_missing_components_render_empty_regions(self):
        out = render_overlays(None, None, None, "a4")
        assert out.side_html == EMPTY_PANEL
        assert out.footer_html == EMPTY_PANEL

    def test_none_markup_is_empty(self):
        out = render_overlays(lambda **_: None, lambda **_: None, {}, "a4")
        assert out.side_html == ""

    def test_component_failure_is_render_error(self):
        def broken(**_):
            raise KeyError("clientName")

        with pytest.raises(RenderError) as info:
            render_overlays(broken, None, {}, "a4")
        assert isinstance(info.value.__cause__, KeyError)

    def test_interactive_output_is_made_inert(self):
        out = render_overlays(lambda **_: '<div onmouseover="x()">Legend</div>', None, {}, "a4")
        assert out.side_html == "<div>Legend</div>"


class TestFacingImage:
    def test_matching_direction(self):
        meta = OverlayMetadata(data={"facing": "N"}, facing_key="facing", facing_images={"N": "n.png"})
        assert resolve_facing_image(meta) == "n.png"

    def test_no_matching_entry(self):
        meta = OverlayMetadata(data={"facing": "Q"}, facing_key="facing", facing_images={"N": "n.png"})
        assert resolve_facing_image(meta) is None

    def test_missing_key_or_images(self):
        assert resolve_facing_image(OverlayMetadata(data={}, facing_images={"N": "n.png"})) is None
        assert resolve_facing_image(OverlayMetadata(data={"facing": "N"})) is None

    def test_custom_key(self):
        meta = OverlayMetadata(data={"orientation": "W"}, facing_key="orientation", facing_images={"W": "w.png"})
        assert resolve_facing_image(meta) == "w.png"

    def test_unhashable_direction(self):
        meta = OverlayMetadata(data={"facing": ["N"]}, facing_images={"N": "n.png"})
        assert resolve_facing_image(meta) is None


class TestStockPanels:
    def test_title_block_fields(self):
        html = title_block_panel(
            data={"title": "Ground Floor", "clientName": "ACME Corp", "drawing_number": "DWG-001"},
            page_format="a4",
        )
        assert "Ground Floor" in html
        assert "ACME Corp" in html
        assert "DWG-001" in html

    def test_title_block_escapes_values(self):
        html = title_block_panel(data={"project": "<b>x</b>"}, page_format="a4")
        assert "&lt;b&gt;x&lt;/b&gt;" in html

    def test_font_grows_with_page(self):
        assert "font-size: 15px" in title_block_panel(data={}, page_format="a2")
        assert "font-size: 9px" in title_block_panel(data={}, page_format="a5")

    def test_notes_footer_with_logo(self):
        html = notes_footer(data={"notes": "All dimensions in mm."}, page_format="a4", logo_ref="logo.png")
        assert "All dimensions in mm." in html
        assert 'src="logo.png"' in html

    def test_notes_footer_without_logo(self):
        assert "<img" not in notes_footer(data={}, page_format="a4")
