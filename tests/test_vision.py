"""
Image Statistics + Heuristic Classifier Tests
=============================================
Run with: python -m pytest tests/test_vision.py -v
"""

import io
import unittest

from PIL import Image

from carelens.core.config import HeuristicConfig
from carelens.core.errors import DecodeError
from carelens.layers.classifier import BRANCHES, CONDITION_CODES, classify
from carelens.layers.recommendations import CONDITIONS
from carelens.layers.vision import ImageFeatures, extract
from tests.helpers import png_bytes, split_png_bytes


class TestExtract(unittest.TestCase):

    def test_dark_image(self):
        features = extract(png_bytes((30, 30, 30)))
        self.assertEqual(features.dark_ratio, 1.0)
        self.assertEqual(features.light_ratio, 0.0)
        self.assertEqual(features.color_variation, 0.0)
        self.assertEqual(features.redness_ratio, 0.0)

    def test_red_image(self):
        features = extract(png_bytes((200, 50, 50)))
        self.assertEqual(features.redness_ratio, 1.0)
        self.assertEqual(features.color_variation, 300.0)
        self.assertEqual(features.dark_ratio, 0.0)  # brightness exactly 100 is not dark

    def test_light_image(self):
        features = extract(png_bytes((250, 250, 250)))
        self.assertEqual(features.light_ratio, 1.0)

    def test_ratios_follow_pixel_share(self):
        features = extract(split_png_bytes((20, 20, 20), (240, 240, 240)))
        self.assertAlmostEqual(features.dark_ratio, 0.5)
        self.assertAlmostEqual(features.light_ratio, 0.5)

    def test_sampling_stride(self):
        features = extract(png_bytes(size=(64, 64)), HeuristicConfig(sample_stride=4))
        self.assertEqual(features.sampled, 64 * 64 // 4)
        every_pixel = extract(png_bytes(size=(64, 64)), HeuristicConfig(sample_stride=1))
        self.assertEqual(every_pixel.sampled, 64 * 64)

    def test_large_images_downscaled(self):
        features = extract(png_bytes(size=(1024, 100)), HeuristicConfig(max_side=512, sample_stride=4))
        self.assertEqual(features.sampled, 512 * 50 // 4)

    def test_jpeg_decoded_at_reduced_scale(self):
        buf = io.BytesIO()
        Image.new("RGB", (2048, 2048), (180, 160, 150)).save(buf, format="JPEG")
        features = extract(buf.getvalue(), HeuristicConfig(max_side=512, sample_stride=4))
        self.assertEqual(features.sampled, 512 * 512 // 4)

    def test_pixel_limit_checked_before_decoding(self):
        data = png_bytes(size=(64, 64))
        with self.assertRaises(DecodeError):
            extract(data, HeuristicConfig(max_pixels=64 * 64 - 1))
        self.assertEqual(extract(data, HeuristicConfig(max_pixels=64 * 64)).sampled, 64 * 64 // 4)

    def test_grayscale_and_alpha_inputs(self):
        for mode, color in (("L", 40), ("RGBA", (200, 50, 50, 128)), ("P", 3)):
            buf = io.BytesIO()
            Image.new(mode, (16, 16), color).save(buf, format="PNG")
            features = extract(buf.getvalue())
            self.assertGreater(features.sampled, 0)

    def test_undecodable_bytes(self):
        full = png_bytes(size=(128, 128))
        for data in (b"", b"not an image at all", b"\x89PNG\r\n\x1a\n", full[: len(full) // 2]):
            with self.assertRaises(DecodeError):
                extract(data)

    def test_features_flagged_heuristic(self):
        self.assertTrue(extract(png_bytes()).to_dict()["isHeuristic"])


class TestClassify(unittest.TestCase):

    def test_label_set_matches_recommendation_table(self):
        self.assertEqual(set(CONDITION_CODES), set(CONDITIONS))
        self.assertEqual(len(CONDITION_CODES), 8)
        for branch in BRANCHES:
            self.assertIn(branch.label, CONDITION_CODES)
            self.assertTrue(0.65 <= branch.confidence <= 0.78)

    def test_branches(self):
        cases = [
            (ImageFeatures(0.4, 0.0, 80.0, 0.0), "melanoma_suspect"),
            (ImageFeatures(0.0, 0.0, 90.0, 0.5), "cellulitis"),
            (ImageFeatures(0.0, 0.0, 30.0, 0.3), "acne"),
            (ImageFeatures(0.0, 0.3, 30.0, 0.2), "rosacea"),
            (ImageFeatures(0.0, 0.5, 45.0, 0.0), "psoriasis"),
            (ImageFeatures(0.0, 0.0, 60.0, 0.0), "eczema"),
            (ImageFeatures(0.25, 0.0, 30.0, 0.0), "fungal_infection"),
            (ImageFeatures(0.0, 0.0, 5.0, 0.0), "normal"),
        ]
        for features, label in cases:
            self.assertEqual(classify(features).label, label, features)

    def test_first_match_wins(self):
        # Matches melanoma, cellulitis, acne and eczema; melanoma is first.
        result = classify(ImageFeatures(0.4, 0.0, 90.0, 0.5))
        self.assertEqual(result.label, "melanoma_suspect")
        self.assertEqual(result.confidence, 0.7)

    def test_default_fallthrough(self):
        result = classify(ImageFeatures(0.0, 0.0, 35.0, 0.1))
        self.assertEqual(result.label, "normal")
        self.assertEqual(result.confidence, 0.6)

    def test_thresholds_are_configuration(self):
        features = ImageFeatures(0.0, 0.0, 60.0, 0.0)
        self.assertEqual(classify(features).label, "eczema")
        relaxed = HeuristicConfig(eczema_variation=65.0)
        self.assertEqual(classify(features, relaxed).label, "normal")

    def test_deterministic_and_provenance(self):
        features = ImageFeatures(0.1, 0.2, 55.0, 0.05)
        first, second = classify(features), classify(features)
        self.assertEqual((first.label, first.confidence), (second.label, second.confidence))
        self.assertEqual(first.provenance.method, "heuristic")
        self.assertTrue(first.provenance.is_heuristic)
        self.assertLessEqual(first.confidence, 0.95)

    def test_end_to_end_on_images(self):
        self.assertEqual(classify(extract(png_bytes((200, 50, 50)))).label, "cellulitis")
        self.assertEqual(classify(extract(png_bytes((30, 30, 30)))).label, "fungal_infection")
        self.assertEqual(classify(extract(png_bytes((180, 160, 150)))).label, "eczema")
        self.assertEqual(classify(extract(png_bytes((120, 120, 120)))).label, "normal")


if __name__ == "__main__":
    unittest.main(verbosity=2)
