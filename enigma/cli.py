import argparse
import logging
import sys

from . import config as cfg
from .errors import ConfigurationError
from .timing import time_encoding
from .trace import TRACE_DESTINATIONS, make_trace_sink

logger = logging.getLogger(__name__)


def _load(args):
    if args.config is None:
        config = cfg.default_config()
    else:
        config = cfg.load_config(args.config)
    return config


def _apply_positions(machine, positions):
    # positions are given as window letters, left to right, like on the machine
    if positions is not None:
        machine.set_windows(positions)


def cmd_encode(args):
    config = _load(args)
    trace = make_trace_sink(args.log, args.log_file)
    try:
        machine = cfg.build_from_config(config, trace=trace)
        _apply_positions(machine, args.positions)

        texts = args.text if args.text else [line.rstrip('\n') for line in sys.stdin]
        for text in texts:
            print(machine.encode_message(text, chunk_size=args.chunk))
    finally:
        trace.close()
    return 0


def cmd_init_config(args):
    cfg.save_config(cfg.default_config(), args.output)
    print(f'wrote default machine settings to {args.output}')
    return 0


def cmd_random_config(args):
    config = cfg.random_config(seed=args.seed, n_swaps=args.swaps, custom_wheels=args.custom_wheels,
                               double_step=not args.simple_carry)
    cfg.save_config(config, args.output)
    print(f'wrote random machine settings to {args.output}')
    return 0


def cmd_bench(args):
    machine = cfg.build_from_config(_load(args))
    avg_time = time_encoding(machine, n_messages=args.messages, chars_per_message=args.length, seed=args.seed)
    print(f'Average encoding time for message with {args.length} characters: {avg_time:.2e} seconds')
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='enigma', description='Three rotor cipher machine.')
    parser.add_argument('-v', '--verbose', action='store_true', help='log loading and normalisation notices')
    sub = parser.add_subparsers(dest='command', required=True)

    encode = sub.add_parser('encode', help='encode (or decode) text, reads stdin if no text is given')
    encode.add_argument('text', nargs='*')
    encode.add_argument('-c', '--config', help='machine settings (JSON), defaults to the M3 reference machine')
    encode.add_argument('--chunk', type=int, default=None, help='group output in blocks of this size')
    encode.add_argument('--positions', help='starting window letters, left to right, e.g. ADU')
    encode.add_argument('--log', choices=TRACE_DESTINATIONS, default='off', help='where to trace every stage')
    encode.add_argument('--log-file', help='trace file for --log file')
    encode.set_defaults(func=cmd_encode)

    init = sub.add_parser('init-config', help='write the M3 reference settings')
    init.add_argument('output')
    init.set_defaults(func=cmd_init_config)

    rand = sub.add_parser('random-config', help='write a random settings sheet')
    rand.add_argument('output')
    rand.add_argument('--seed', type=int, default=None)
    rand.add_argument('--swaps', type=int, default=10, help='number of plugboard cables')
    rand.add_argument('--custom-wheels', action='store_true', help='generate new rotor and reflector wirings')
    rand.add_argument('--simple-carry', action='store_true', help='use the odometer carry instead of double-stepping')
    rand.set_defaults(func=cmd_random_config)

    bench = sub.add_parser('bench', help='time the encoding of random messages')
    bench.add_argument('-c', '--config')
    bench.add_argument('--messages', type=int, default=3000)
    bench.add_argument('--length', type=int, default=256)
    bench.add_argument('--seed', type=int, default=0)
    bench.set_defaults(func=cmd_bench)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s',
                        datefmt='%Y-%m-%d %H:%M:%S')
    try:
        return args.func(args)
    except (ConfigurationError, ValueError, OSError) as err:
        logger.error('%s', err)
        return 1


if __name__ == '__main__':
    sys.exit(main())
