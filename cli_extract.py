#!/usr/bin/env python3
"""
CLI for highlight extraction.

Computes extraction regions for an annotated page photo and optionally
sends them to the recognition service.

Annotation JSON is either
    {"strokes": [{"points": [[x, y], ...], "lineWidth": 4}], "rendered": [w, h]}
or
    {"selection": {"x": .., "y": .., "width": .., "height": ..}}
with coordinates normalized to the displayed image.
"""
import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import uvicorn

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from api.dependencies import build_ocr_service, get_region_assembler
from config.settings import settings
from core.constants import HIGHLIGHT_MODE_TIGHT
from core.models import Point, SelectionRect, Stroke
from segmentation.coordinates import CoordinateMapper, DisplaySurface
from services.extraction_session import ExtractionSession
from utils.bbox_utils import draw_bounding_boxes
from utils.image_utils import load_image_bytes


def load_annotation(path: str):
    """Read strokes or a selection plus the rendered size from JSON."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    strokes = [
        Stroke.from_points(
            (Point(float(x), float(y)) for x, y in s.get('points', [])),
            line_width=float(s.get('lineWidth', 4.0))
        )
        for s in data.get('strokes', [])
    ]
    selection = None
    if data.get('selection'):
        sel = data['selection']
        selection = SelectionRect(
            x=float(sel['x']),
            y=float(sel['y']),
            width=float(sel['width']),
            height=float(sel['height'])
        )
    rendered = data.get('rendered')
    return strokes, selection, rendered


def regions_cli(image_path: str, annotation_path: str, mode: str, preview: str = None):
    """Print the regions computed for an annotation."""
    if not os.path.exists(image_path):
        print(f"❌ Error: File not found: {image_path}")
        return None

    with open(image_path, 'rb') as f:
        image = load_image_bytes(f.read())

    strokes, selection, rendered = load_annotation(annotation_path)
    surface = DisplaySurface(*rendered) if rendered else DisplaySurface(image.width, image.height)
    mapper = CoordinateMapper(image.width, image.height, surface)
    assembler = get_region_assembler()

    if strokes:
        result = assembler.assemble_highlight(strokes, image, mapper, mode)
    elif selection is not None:
        result = assembler.assemble_selection(selection, mapper)
    else:
        print("❌ Error: annotation has neither strokes nor a selection")
        return None

    print(f"Image: {image.width} x {image.height}")
    print(f"Status: {result.status}")
    for i, region in enumerate(result.regions):
        print(f"  [{i}] x={region.x:.4f} y={region.y:.4f} w={region.width:.4f} h={region.height:.4f}")

    if preview:
        if result.masked_image is not None:
            result.masked_image.save(preview)
        else:
            boxes = [mapper.to_native(r).to_box() for r in result.regions]
            draw_bounding_boxes(image, boxes).save(preview)
        print(f"✓ Preview saved to {preview}")

    return result


async def extract_cli(image_path: str, annotation_path: str, mode: str):
    """Run a full extraction session and print the text."""
    if not os.path.exists(image_path):
        print(f"❌ Error: File not found: {image_path}")
        return None

    if not settings.ocr_api_key:
        print("❌ Error: OCR_API_KEY is not set")
        return None

    with open(image_path, 'rb') as f:
        data = f.read()
    image = load_image_bytes(data)

    session = ExtractionSession(
        recognizer=build_ocr_service(),
        assembler=get_region_assembler(),
        highlight_mode=mode
    )
    session.set_image(data, 'image/png' if image_path.lower().endswith('.png') else 'image/jpeg')

    if annotation_path:
        strokes, selection, rendered = load_annotation(annotation_path)
        session.resize_surface(*(rendered or image.size))
        if strokes:
            session.commit_strokes(strokes)
            outcome = await session.extract_highlight()
        elif selection is None:
            print("❌ Error: annotation has neither strokes nor a selection")
            return None
        else:
            session.set_selection(selection)
            outcome = await session.extract_selection()
    else:
        session.resize_surface(*image.size)
        outcome = await session.extract_full_image()

    print(f"State: {outcome.state.value}")
    if outcome.reason:
        print(f"Reason: {outcome.reason}")
    if outcome.text:
        print("-" * 60)
        print(outcome.text)
    return outcome


def serve_cli(host: str, port: int):
    """Serve the OCR API."""
    print(f"Serving Highlight OCR API on http://{host}:{port}")
    uvicorn.run("serving.ocr_api:app", host=host, port=port)


def main():
    parser = argparse.ArgumentParser(
        description='Highlight-to-region extraction CLI'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    regions_parser = subparsers.add_parser('regions', help='Compute extraction regions')
    regions_parser.add_argument('image', type=str, help='Page photo')
    regions_parser.add_argument('--annotation', type=str, required=True, help='Annotation JSON file')
    regions_parser.add_argument('--mode', type=str, default=HIGHLIGHT_MODE_TIGHT, choices=['tight', 'masked'], help='Highlight output mode')
    regions_parser.add_argument('--preview', type=str, help='Write a preview image to this path')

    extract_parser = subparsers.add_parser('extract', help='Extract text via the recognition service')
    extract_parser.add_argument('image', type=str, help='Page photo')
    extract_parser.add_argument('--annotation', type=str, help='Annotation JSON file (omit for full image)')
    extract_parser.add_argument('--mode', type=str, default=HIGHLIGHT_MODE_TIGHT, choices=['tight', 'masked'], help='Highlight output mode')

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
    serve_parser.add_argument('--host', type=str, default=settings.api_host, help='Bind address')
    serve_parser.add_argument('--port', type=int, default=settings.api_port, help='Bind port')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s %(message)s'
    )

    if args.command == 'regions':
        regions_cli(args.image, args.annotation, args.mode, args.preview)
    elif args.command == 'extract':
        asyncio.run(extract_cli(args.image, args.annotation, args.mode))
    elif args.command == 'serve':
        serve_cli(args.host, args.port)
    else:
        parser.print_help()


if __name__ == '__main__':
    main()
