"""
Rust RIFF command line.

    rustriff compile IMAGE [-o OUT]
    rustriff decode CONTAINER [-o OUT.png] [--show]

Decoding prints "WIDTH HEIGHT". --show hands the decoded image to the
system image viewer.
"""

import sys
import logging
import argparse
from typing import List, Optional

from rriff_types import RiffError, logger
from rriff_encoder import RiffEncoder
from rriff_decoder import RiffDecoder


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='rustriff',
        description='Convert images to and from the Rust RIFF hex pixel-dump format')
    parser.add_argument('-v', '--verbose', action='store_true',
        help='print debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    comp = sub.add_parser('compile', help='encode an image into a .rust-riff container')
    comp.add_argument('image', metavar='IMAGE', help='source image file')
    comp.add_argument('-o', '--output', metavar='OUT',
        help='container path (default: IMAGE with a .rust-riff extension)')
    comp.add_argument('--native-byte-order', action='store_true',
        help='write the header in this machine\'s byte order (original tool behavior)')
    comp.add_argument('--uppercase', action='store_true',
        help='emit uppercase hex digits')

    dec = sub.add_parser('decode', help='decode a .rust-riff container into an image')
    dec.add_argument('container', metavar='CONTAINER', help='.rust-riff file')
    dec.add_argument('-o', '--output', metavar='OUT',
        help='write the decoded image here')
    dec.add_argument('-f', '--format', default='PNG', choices=('PNG', 'BMP', 'TIFF'),
        help='output image format (default: %(default)s)')
    dec.add_argument('--show', action='store_true',
        help='open the decoded image in a viewer')
    dec.add_argument('--native-byte-order', action='store_true',
        help='read the header in this machine\'s byte order (original tool behavior)')
    dec.add_argument('--legacy-alpha', action='store_true',
        help='paint pixels at the original tool\'s near-zero opacity')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s: %(message)s')
        logger.setLevel(logging.DEBUG)

    byte_order = 'native' if args.native_byte_order else 'little'
    try:
        if args.command == 'compile':
            encoder = RiffEncoder(byte_order=byte_order, uppercase=args.uppercase)
            result = encoder.encode(args.image, args.output)
            print(f"Rust RIFF has successfully compiled {args.image} to {result['paths']['container']}")
        else:
            decoder = RiffDecoder(byte_order=byte_order, opaque=not args.legacy_alpha,
                                  image_format=args.format)
            result = decoder.decode(args.container, args.output)
            print(result['width'], result['height'])
            if args.show:
                result['image'].show(title='Rust RIFF image preview')
    except RiffError as exc:
        print(f"rustriff: error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
