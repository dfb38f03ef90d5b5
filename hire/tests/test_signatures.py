import json

from django.test import SimpleTestCase

from hire.exceptions import SignatureError
from hire.services.signatures import (
    decode_data_url,
    encode_data_url,
    is_blank,
    parse_strokes,
    render_strokes,
    signature_from_payload,
)


class SignatureTests(SimpleTestCase):
    def test_strokes_render_to_visible_png(self):
        png = render_strokes([[(10, 10), (50, 50)]], 600, 150)
        self.assertTrue(png.startswith(b"\x89PNG"))
        self.assertFalse(is_blank(png))

    def test_empty_canvas_is_blank(self):
        self.assertTrue(is_blank(render_strokes([], 600, 150)))

    def test_blank_signature_is_rejected(self):
        blank = encode_data_url(render_strokes([], 600, 150))
        with self.assertRaises(SignatureError):
            signature_from_payload(blank, "", 600, 150)

    def test_missing_signature_is_rejected(self):
        with self.assertRaises(SignatureError):
            signature_from_payload("", "", 600, 150)

    def test_strokes_take_precedence_over_image(self):
        strokes = json.dumps([[{"x": 5, "y": 5}, {"x": 90, "y": 40}]])
        png = signature_from_payload("data:image/png;base64,broken", strokes, 600, 150)
        self.assertFalse(is_blank(png))

    def test_data_url_is_used_without_strokes(self):
        png = render_strokes([[(10, 10), (40, 80)]], 600, 150)
        self.assertEqual(signature_from_payload(encode_data_url(png), None, 600, 150), png)

    def test_bad_data_url(self):
        with self.assertRaises(SignatureError):
            decode_data_url("data:image/jpeg;base64,AAAA")
        with self.assertRaises(SignatureError):
            decode_data_url("data:image/png;base64,bm90IGFuIGltYWdl")

    def test_parse_strokes_validates_points(self):
        self.assertEqual(parse_strokes('[[{"x": 1, "y": 2}], []]'), [[(1.0, 2.0)]])
        with self.assertRaises(SignatureError):
            parse_strokes('[[{"x": 1}]]')
        with self.assertRaises(SignatureError):
            parse_strokes("not json")
