"""Tests for the receipts command-line interface."""

import base64
import hashlib
import json
from unittest.mock import Mock, patch

from click.testing import CliRunner

from receipt_ocr.cli import cli, ReceiptProcessor, summarize_statuses, failed_files
from receipt_ocr.ocr import VisionOCRProcessor

RECEIPT_TEXT = "스타벅스 강남점\n2024-01-15\n아메리카노 1 4500\n합계 4,500원"


def _vision_response(text):
    response = Mock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = {'responses': [{'textAnnotations': [{'description': text}]}]}
    return response


class TestParseCommand:
    """Test suite for `receipts parse`."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_parse_from_stdin(self):
        result = self.runner.invoke(cli, ['parse'], input=RECEIPT_TEXT)

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data == {
            'date': "2024-01-15",
            'description': "스타벅스 강남점",
            'amount': 4500,
            'raw_text': RECEIPT_TEXT,
        }

    def test_parse_prefill(self, tmp_path):
        text_file = tmp_path / "receipt.txt"
        text_file.write_text("1234\n영수증", encoding="utf-8")

        result = self.runner.invoke(cli, ['parse', '--prefill', str(text_file)])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data['date'] == ''
        assert data['amount'] == 0
        assert data['description'] == "영수증"


class TestExtractCommand:
    """Test suite for `receipts extract`."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_extract_image(self, tmp_path):
        image = tmp_path / "receipt.png"
        image.write_bytes(b"png")

        with patch('requests.post') as mock_post:
            mock_post.return_value = _vision_response(RECEIPT_TEXT)
            result = self.runner.invoke(cli, ['extract', '--api-key', 'k', str(image)])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data['amount'] == 4500
        assert data['date'] == "2024-01-15"

    def test_extract_without_api_key_fails(self, tmp_path):
        image = tmp_path / "receipt.png"
        image.write_bytes(b"png")

        result = self.runner.invoke(cli, ['extract', str(image)],
                                    env={'GOOGLE_VISION_API_KEY': ''})

        assert result.exit_code == 1
        assert "API key not configured" in result.output


class TestBatchCommand:
    """Test suite for `receipts batch`."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_batch_writes_results_and_review(self, tmp_path):
        input_dir = tmp_path / "in"
        (input_dir / "sub").mkdir(parents=True)
        (input_dir / "good.jpg").write_bytes(b"good")
        (input_dir / "sub" / "partial.png").write_bytes(b"partial")
        (input_dir / "notes.txt").write_text("ignored")
        output_dir = tmp_path / "out"

        def fake_post(url, params=None, json=None, timeout=None):
            content = json['requests'][0]['image']['content']
            # base64 of b"good" is "Z29vZA=="
            if content == "Z29vZA==":
                return _vision_response(RECEIPT_TEXT)
            return _vision_response("영수증\n감사합니다")

        with patch('requests.post', side_effect=fake_post):
            result = self.runner.invoke(cli, [
                'batch', '--in', str(input_dir), '--out', str(output_dir),
                '--api-key', 'k', '--max-workers', '2',
            ])

        assert result.exit_code == 0, result.output
        assert "Total files found: 2" in result.output

        results = json.loads((output_dir / "results.json").read_text(encoding="utf-8"))
        assert [r['needs_review'] for r in results] == [False, True]
        assert results[0]['amount'] == 4500

        review = json.loads((output_dir / "review.json").read_text(encoding="utf-8"))
        assert len(review) == 1
        assert review[0]['reason'] == "missing date; missing amount"
        assert len(list((output_dir / "ocr_json").glob("*.json"))) == 2

    def test_batch_isolates_failures(self, tmp_path):
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        (input_dir / "a.jpg").write_bytes(b"a")
        (input_dir / "b.jpg").write_bytes(b"b")
        output_dir = tmp_path / "out"

        failed = Mock(ok=False, status_code=500, reason="Internal Server Error")
        with patch('requests.post', side_effect=[failed, _vision_response(RECEIPT_TEXT)]):
            result = self.runner.invoke(cli, [
                'batch', '--in', str(input_dir), '--out', str(output_dir),
                '--api-key', 'k', '--max-workers', '1',
            ])

        assert result.exit_code == 0, result.output
        results = json.loads((output_dir / "results.json").read_text(encoding="utf-8"))
        assert results[0]['error'] == "Vision API error: Internal Server Error"
        assert results[1]['amount'] == 4500
        assert "FILES NOT PROCESSED (1)" in result.output

    def test_batch_survives_corrupt_cache_and_huge_amount(self, tmp_path):
        """A truncated cache file and an unconvertible total do not abort the run."""
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        (input_dir / "a.jpg").write_bytes(b"a")
        (input_dir / "b.jpg").write_bytes(b"b")
        output_dir = tmp_path / "out"
        cache_dir = output_dir / "ocr_json"
        cache_dir.mkdir(parents=True)
        a_hash = hashlib.md5(b"a").hexdigest()
        (cache_dir / f"a_{a_hash}.json").write_text('{"full_text": "합', encoding="utf-8")

        def fake_post(url, params=None, json=None, timeout=None):
            if json['requests'][0]['image']['content'] == base64.b64encode(b"a").decode():
                return _vision_response(RECEIPT_TEXT)
            return _vision_response("가게\n2024-01-15\n합계 " + "1" * 5000 + "원")

        with patch('requests.post', side_effect=fake_post):
            result = self.runner.invoke(cli, [
                'batch', '--in', str(input_dir), '--out', str(output_dir),
                '--api-key', 'k', '--max-workers', '2',
            ])

        assert result.exit_code == 0, result.output
        results = json.loads((output_dir / "results.json").read_text(encoding="utf-8"))
        assert results[0]['amount'] == 4500
        assert results[0]['status'] == 'processed'
        assert results[1]['amount'] is None
        assert results[1]['status'] == 'review'


class TestReceiptProcessor:
    """Test suite for ReceiptProcessor failure isolation and counters."""

    def _ocr(self, side_effect):
        ocr_processor = Mock()
        ocr_processor.allowed_extensions = ('.jpg',)
        ocr_processor.extract_text_from_image.side_effect = side_effect
        return ocr_processor

    def test_unexpected_error_is_recorded_per_file(self, tmp_path):
        def fake_ocr(path, output_dir=None):
            if path.name == "bad.jpg":
                raise ValueError("unexpected payload")
            return {'full_text': RECEIPT_TEXT}

        input_dir = tmp_path / "in"
        input_dir.mkdir()
        (input_dir / "bad.jpg").write_bytes(b"x")
        (input_dir / "good.jpg").write_bytes(b"y")

        processor = ReceiptProcessor(self._ocr(fake_ocr), max_workers=2)
        results = processor.process_batch(input_dir, tmp_path / "out")

        assert [r['status'] for r in results] == ['failed', 'processed']
        assert results[0]['error'] == "unexpected payload"
        assert processor.stats['failed'] == 1
        assert processor.stats['processed'] == 1
        assert summarize_statuses(results) == {'failed': 1, 'processed': 1}
        assert failed_files(results) == ["bad.jpg: unexpected payload"]

    def test_counters_match_results_with_many_workers(self, tmp_path):
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        for i in range(40):
            (input_dir / f"r{i:02d}.jpg").write_bytes(b"x")

        processor = ReceiptProcessor(
            self._ocr(lambda path, output_dir=None: {'full_text': RECEIPT_TEXT}),
            max_workers=8,
        )
        results = processor.process_batch(input_dir, tmp_path / "out")

        assert len(results) == 40
        assert processor.stats['processed'] == 40
        assert processor.stats['failed'] == 0
        assert processor.stats['total_files'] == 40


class TestExtractCommandErrors:
    """Test suite for `receipts extract` error reporting."""

    def test_unreadable_image_reports_error(self, tmp_path):
        image = tmp_path / "receipt.png"
        image.write_bytes(b"png")

        with patch.object(VisionOCRProcessor, 'extract_text_from_image',
                          side_effect=PermissionError("permission denied")):
            result = CliRunner().invoke(cli, ['extract', '--api-key', 'k', str(image)])

        assert result.exit_code == 1
        assert "Error: permission denied" in result.output
        assert not isinstance(result.exception, PermissionError)
