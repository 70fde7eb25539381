from __future__ import annotations

import unittest

from app.services.image_formats import GIF, JPEG, PNG, asset_file_name, sniff_image_format


class TestImageFormats(unittest.TestCase):
    def test_detects_supported_signatures(self) -> None:
        self.assertIs(sniff_image_format(b"GIF89a" + b"\x00" * 8), GIF)
        self.assertIs(sniff_image_format(b"GIF87a"), GIF)
        self.assertIs(sniff_image_format(b"\xff\xd8\xff\xe0" + b"\x00" * 8), JPEG)
        self.assertIs(sniff_image_format(b"\x89PNG\r\n\x1a\n" + b"\x00" * 8), PNG)

    def test_rejects_other_content(self) -> None:
        self.assertIsNone(sniff_image_format(b"%PDF-1.7"))
        self.assertIsNone(sniff_image_format(b"<html></html>"))
        self.assertIsNone(sniff_image_format(b""))

    def test_file_name_uses_format_extension(self) -> None:
        self.assertEqual(asset_file_name("dune", JPEG), "dune.jpg")
        self.assertEqual(asset_file_name("", PNG), "asset.png")


if __name__ == "__main__":
    unittest.main()
