"""Command-line interface for receipt OCR pre-fill."""

import logging
import click
from pathlib import Path
from typing import List, Dict, Any, Optional
import json
from concurrent.futures import ThreadPoolExecutor, as_completed
from tqdm import tqdm
import sys
from collections import Counter

from .config import load_config
from .ocr import VisionOCRProcessor, OCRError, ImageValidationError
from .parse import ReceiptParser
from .review import ReviewQueue

logger = logging.getLogger(__name__)


class ReceiptProcessor:
    """Batch OCR and field extraction for receipt images."""

    def __init__(self,
                 ocr_processor: VisionOCRProcessor,
                 max_workers: int = 4,
                 snippet_length: int = 200):
        """
        Initialize the receipt processor.

        Args:
            ocr_processor: OCR provider client
            max_workers: Number of parallel workers
            snippet_length: Raw text snippet length for review items
        """
        self.ocr_processor = ocr_processor
        self.max_workers = max_workers
        self.parser = ReceiptParser()
        self.review_queue = ReviewQueue(snippet_length=snippet_length)

        # Updated only from the thread collecting results
        self.stats = {
            'total_files': 0,
            'processed': 0,
            'failed': 0,
            'review_items': 0
        }

    def find_receipt_files(self, input_dir: Path) -> List[Path]:
        """Find all receipt images in the input directory and its subdirectories."""
        allowed = {ext.lower() for ext in self.ocr_processor.allowed_extensions}
        receipt_files = sorted(
            path for path in input_dir.rglob('*')
            if path.is_file() and path.suffix.lower() in allowed
        )
        logger.info(f"Found {len(receipt_files)} receipt images in {input_dir}")

        for receipt_file in receipt_files:
            logger.debug(f"  Found: {receipt_file.relative_to(input_dir)}")

        return receipt_files

    def process_single_file(self,
                            receipt_path: Path,
                            ocr_output_dir: Optional[Path] = None) -> Dict[str, Any]:
        """
        Process a single receipt image.

        Failures are recorded and returned rather than raised so that one bad
        image does not affect the rest of the batch.

        Args:
            receipt_path: Path to receipt image
            ocr_output_dir: Output directory for cached OCR JSON

        Returns:
            Dictionary with extraction results and a processed/review/failed status
        """
        try:
            logger.debug(f"Processing {receipt_path.name}")
            ocr_result = self.ocr_processor.extract_text_from_image(receipt_path, ocr_output_dir)

            extraction = self.parser.extract(ocr_result['full_text'])
            needs_review = self.review_queue.add_from_extraction(str(receipt_path), extraction)

            result = {'file_path': str(receipt_path)}
            result.update(extraction.to_dict())
            result['needs_review'] = needs_review
            result['status'] = 'review' if needs_review else 'processed'
            return result

        except Exception as e:
            logger.error(f"Failed to process {receipt_path}: {e}")
            self.review_queue.add_item(
                file_path=str(receipt_path),
                reason=f"Processing failed: {e}",
                raw_snippet=f"Error: {e}"
            )
            return {
                'file_path': str(receipt_path),
                'date': None,
                'description': None,
                'amount': None,
                'raw_text': '',
                'needs_review': True,
                'status': 'failed',
                'error': str(e)
            }

    def _record(self, result: Dict[str, Any]):
        if result['status'] == 'failed':
            self.stats['failed'] += 1
        else:
            self.stats['processed'] += 1

    def process_batch(self, input_dir: Path, output_dir: Path) -> List[Dict[str, Any]]:
        """
        Process all receipt images in the input directory.

        Args:
            input_dir: Directory containing receipt images
            output_dir: Output directory for results

        Returns:
            List of extraction results, one per image
        """
        receipt_files = self.find_receipt_files(input_dir)
        self.stats['total_files'] = len(receipt_files)

        if not receipt_files:
            logger.warning("No receipt files found!")
            return []

        ocr_output_dir = output_dir / 'ocr_json'
        ocr_output_dir.mkdir(parents=True, exist_ok=True)

        results = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self.process_single_file, receipt_file, ocr_output_dir)
                for receipt_file in receipt_files
            ]

            with tqdm(total=len(receipt_files), desc="Processing receipts") as pbar:
                for future in as_completed(futures):
                    result = future.result()
                    self._record(result)
                    results.append(result)
                    pbar.update(1)
                    pbar.set_postfix({
                        'processed': self.stats['processed'],
                        'failed': self.stats['failed']
                    })

        self.stats['review_items'] = len(self.review_queue.items)
        results.sort(key=lambda r: r['file_path'])

        logger.info(f"Batch processing complete. Processed: {self.stats['processed']}, "
                    f"Failed: {self.stats['failed']}, Review items: {self.stats['review_items']}")
        return results


def summarize_statuses(results: List[Dict[str, Any]]) -> Dict[str, int]:
    """Count batch results by status."""
    return dict(Counter(result['status'] for result in results))


def failed_files(results: List[Dict[str, Any]]) -> List[str]:
    """Describe the files that could not be processed."""
    return [
        f"{Path(result['file_path']).name}: {result.get('error', 'unknown')}"
        for result in results if result['status'] == 'failed'
    ]


def _build_ocr(config: Dict[str, Any], api_key: Optional[str]) -> VisionOCRProcessor:
    ocr_processor = VisionOCRProcessor.from_config(config)
    if api_key:
        ocr_processor.api_key = api_key
    return ocr_processor


def _echo_json(data: Any):
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


@click.group()
@click.option('--config', 'config_path', type=click.Path(path_type=Path),
              help='YAML settings file')
@click.option('--debug', is_flag=True, help='Enable debug output')
@click.pass_context
def cli(ctx, config_path: Optional[Path], debug: bool):
    """Receipt OCR - pre-fill expense records from receipt images."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )
    ctx.obj = load_config(config_path)


@cli.command()
@click.argument('text_file', type=click.File('r', encoding='utf-8'), default='-')
@click.option('--prefill', is_flag=True, help='Print form pre-fill values instead of raw fields')
def parse(text_file, prefill: bool):
    """
    Extract fields from raw OCR text (file or stdin).

    Example:
        receipts parse receipt.txt
    """
    result = ReceiptParser().extract(text_file.read())
    _echo_json(result.to_prefill() if prefill else result.to_dict())


@cli.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--api-key', envvar='GOOGLE_VISION_API_KEY', help='Google Vision API key')
@click.option('--prefill', is_flag=True, help='Print form pre-fill values instead of raw fields')
@click.pass_obj
def extract(config: Dict[str, Any], image: Path, api_key: Optional[str], prefill: bool):
    """
    OCR a single receipt image and extract its fields.

    Example:
        receipts extract ./receipts/starbucks.jpg
    """
    ocr_processor = _build_ocr(config, api_key)
    try:
        ocr_result = ocr_processor.extract_text_from_image(image)
    except (OCRError, ImageValidationError, OSError) as e:
        logger.error(f"Extraction failed for {image}: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    result = ReceiptParser().extract(ocr_result['full_text'])
    _echo_json(result.to_prefill() if prefill else result.to_dict())


@cli.command()
@click.option('--in', 'input_dir', required=True, type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Input directory containing receipt images')
@click.option('--out', 'output_dir', required=True, type=click.Path(path_type=Path),
              help='Output directory for results')
@click.option('--api-key', envvar='GOOGLE_VISION_API_KEY', help='Google Vision API key')
@click.option('--max-workers', type=int, help='Maximum number of parallel workers')
@click.pass_obj
def batch(config: Dict[str, Any], input_dir: Path, output_dir: Path,
          api_key: Optional[str], max_workers: Optional[int]):
    """
    Process a folder of receipt images and write JSON results.

    Example:
        receipts batch --in ./receipts --out ./out
    """
    try:
        output_dir.mkdir(parents=True, exist_ok=True)

        processor = ReceiptProcessor(
            ocr_processor=_build_ocr(config, api_key),
            max_workers=max_workers or config.get('batch', {}).get('max_workers', 4),
            snippet_length=config.get('review', {}).get('snippet_length', 200),
        )

        results = processor.process_batch(input_dir, output_dir)

        results_path = output_dir / 'results.json'
        with open(results_path, 'w', encoding='utf-8') as f:
            json.dump(results, f, ensure_ascii=False, indent=2)

        review_path = output_dir / 'review.json'
        with open(review_path, 'w', encoding='utf-8') as f:
            json.dump([item.to_dict() for item in processor.review_queue.items],
                      f, ensure_ascii=False, indent=2)

        click.echo("=" * 50)
        click.echo("PROCESSING SUMMARY")
        click.echo("=" * 50)
        click.echo(f"Total files found: {processor.stats['total_files']}")
        click.echo(f"Successfully processed: {processor.stats['processed']}")
        click.echo(f"Failed: {processor.stats['failed']}")
        click.echo(f"Items needing review: {len(processor.review_queue.items)}")
        click.echo(f"Results: {results_path}")
        click.echo(f"Review queue: {review_path}")

        for status, count in sorted(summarize_statuses(results).items()):
            click.echo(f"{status}: {count} files")

        missing_files = failed_files(results)
        if missing_files:
            click.echo(f"FILES NOT PROCESSED ({len(missing_files)}):")
            for missing in missing_files[:10]:
                click.echo(f"  - {missing}")
            if len(missing_files) > 10:
                click.echo(f"  ... and {len(missing_files) - 10} more")

    except OSError as e:
        logger.error(f"Processing failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    cli()
