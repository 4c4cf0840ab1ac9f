#!/usr/bin/env python3
"""
Streaming Base64 decoder
Reads base64 text mixed with noise, skips the noise and writes the decoded bytes
"""

import argparse
import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import BinaryIO, Callable, Iterable, Iterator, List, Optional, Tuple, Union

from base64_alphabet import strip_noise
from base64_group import GROUP_SIZE, GroupResult, decode_group

__version__ = "1.0"

DEFAULTS = {
    'chunk_size': 4096,
    'line_limit': 256,
    'workers': 1,
}


def _env_int(name: str, key: str) -> int:
    raw = os.getenv(name, str(DEFAULTS[key]))
    try:
        value = int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(f"Ignoring {name}={raw!r}, using {DEFAULTS[key]}")
        return DEFAULTS[key]
    if value < 1:
        logging.getLogger(__name__).warning(f"Ignoring {name}={value}, using {DEFAULTS[key]}")
        return DEFAULTS[key]
    return value


CONFIG = {
    'chunk_size': _env_int('B64DEC_CHUNK_SIZE', 'chunk_size'),
    'line_limit': _env_int('B64DEC_LINE_LIMIT', 'line_limit'),
    'workers': _env_int('B64DEC_WORKERS', 'workers'),
    'strict': os.getenv('B64DEC_STRICT', '0') == '1',
    'debug_level': os.getenv('B64DEC_LOG_LEVEL', 'WARNING'),
    'log_file': os.getenv('B64DEC_LOG_FILE', ''),
}

MALFORMED_MESSAGE = "Malformed input"

logger = logging.getLogger(__name__)


def configure_logging(level: str = None, log_file: str = None):
    """Set up root logging from CONFIG, overridden by the arguments"""
    level = (level or CONFIG['debug_level']).upper()
    log_file = log_file if log_file is not None else CONFIG['log_file']

    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file) if log_file else logging.StreamHandler(sys.stderr)
        ]
    )


def _to_bytes(data: Union[str, bytes, bytearray]) -> bytes:
    if isinstance(data, str):
        # non-ASCII characters are never alphabet symbols
        return data.encode('ascii', 'ignore')
    return bytes(data)


def split_groups(symbols: bytes) -> Tuple[List[bytes], bytes]:
    """Split filtered symbols into whole groups and the leftover tail"""
    usable = len(symbols) - len(symbols) % GROUP_SIZE
    groups = [symbols[start:start + GROUP_SIZE] for start in range(0, usable, GROUP_SIZE)]
    return groups, symbols[usable:]


def iter_groups(stream, chunk_size: int = None, pending: bytes = b'') -> Iterator[bytes]:
    """Yield 4-symbol groups from a readable stream, ignoring noise.

    The stream is read in chunks of at most chunk_size bytes, and groups may
    span chunk boundaries. A trailing run of 1-3 symbols is yielded as a
    short group so the decoder can report it. pending holds symbols already
    buffered ahead of the stream.
    """
    chunk_size = max(chunk_size or CONFIG['chunk_size'], GROUP_SIZE)

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break

        groups, pending = split_groups(pending + strip_noise(_to_bytes(chunk)))
        yield from groups

    if pending:
        yield pending


def decode_groups(groups: Iterable[bytes], workers: int = 1,
                  executor: ThreadPoolExecutor = None) -> List[GroupResult]:
    """Decode independent groups, in order, optionally on a thread pool"""
    if executor is not None:
        return list(executor.map(decode_group, groups))

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(decode_group, groups))

    return [decode_group(group) for group in groups]


class DecodeStats:
    """Counters for one decoded stream"""

    def __init__(self):
        self.groups = 0
        self.bytes_written = 0
        self.malformed = 0

    def __repr__(self):
        return (f"DecodeStats(groups={self.groups}, bytes_written={self.bytes_written}, "
                f"malformed={self.malformed})")


class StreamDecoder:
    """Decode a base64 stream group by group into a binary sink"""

    def __init__(self, output: BinaryIO, strict: bool = None, chunk_size: int = None,
                 workers: int = None,
                 on_malformed: Optional[Callable[[GroupResult], None]] = None):
        self.output = output
        self.strict = CONFIG['strict'] if strict is None else strict
        self.chunk_size = max(chunk_size or CONFIG['chunk_size'], GROUP_SIZE)
        self.workers = workers or CONFIG['workers']
        self.on_malformed = on_malformed
        self.stats = DecodeStats()
        self.aborted = False
        self._pending = b''
        self._executor = ThreadPoolExecutor(max_workers=self.workers) if self.workers > 1 else None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def ok(self) -> bool:
        return not self.aborted and self.stats.malformed == 0

    def feed(self, data: Union[str, bytes, bytearray]) -> bool:
        """Push more input. Returns False once the decoder has aborted"""
        if self.aborted:
            return False

        groups, self._pending = split_groups(self._pending + strip_noise(_to_bytes(data)))
        if not groups:
            return True

        logger.debug(f"Decoding {len(groups)} group(s), {len(self._pending)} symbol(s) pending")
        return self._emit(groups)

    def finish(self) -> bool:
        """Flush the input. Leftover symbols are reported as an incomplete group"""
        if self.aborted:
            return False

        if self._pending:
            groups, self._pending = [self._pending], b''
            self._emit(groups)

        logger.info(f"Stream decoded: {self.stats.groups} group(s), "
                    f"{self.stats.bytes_written} byte(s), {self.stats.malformed} malformed")
        return self.ok

    def decode_stream(self, stream) -> bool:
        """Decode everything readable from stream, then flush.

        Groups are decoded in batches of one chunk's worth.
        """
        if self.aborted:
            return False

        batch_size = self.chunk_size // GROUP_SIZE
        batch = []

        pending, self._pending = self._pending, b''
        for group in iter_groups(stream, self.chunk_size, pending):
            batch.append(group)
            if len(batch) >= batch_size:
                if not self._emit(batch):
                    return False
                batch = []

        if batch and not self._emit(batch):
            return False
        return self.finish()

    def close(self):
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _emit(self, groups: List[bytes]) -> bool:
        results = decode_groups(groups, executor=self._executor)

        for group, result in zip(groups, results):
            self.stats.groups += 1

            if result.ok:
                self.output.write(result.data)
                self.stats.bytes_written += len(result.data)
                continue

            self.stats.malformed += 1
            logger.info(f"Malformed group #{self.stats.groups} {group!r}: {result.error}")
            if self.on_malformed:
                self.on_malformed(result)

            if self.strict:
                logger.info("Strict mode, aborting decode")
                self.aborted = True
                return False

        return True


def decode_line(line: Union[str, bytes], output: BinaryIO, limit: int = None,
                strict: bool = None,
                on_malformed: Optional[Callable[[GroupResult], None]] = None) -> bool:
    """Decode a single line of input, truncated to limit characters"""
    limit = limit or CONFIG['line_limit']
    line = _to_bytes(line).rstrip(b'\r\n')[:limit]

    decoder = StreamDecoder(output, strict=strict, workers=1, on_malformed=on_malformed)
    decoder.feed(line)
    return decoder.finish()


def decode_base64_to_binary(input_data: Union[str, bytes], output: BinaryIO = None,
                            strict: bool = None) -> bool:
    """Decode base64 string to binary data"""
    if output is None:
        output = sys.stdout.buffer

    with StreamDecoder(output, strict=strict) as decoder:
        decoder.feed(input_data)
        return decoder.finish()


def report_malformed(result: GroupResult):
    sys.stderr.write(f"{MALFORMED_MESSAGE}\n")
    sys.stderr.flush()


def main(argv: List[str] = None) -> int:
    """Entry point"""
    parser = argparse.ArgumentParser(
        description='Decode base64 input, ignoring non-alphabet bytes',
    )
    parser.add_argument('input_file', nargs='?', default='-',
                        help="Input file to decode (default: '-' for stdin)")
    parser.add_argument('-o', '--output', dest='output_file',
                        help='Write decoded bytes to FILE instead of stdout')
    parser.add_argument('--line', action='store_true',
                        help='Decode only the first line of input')
    parser.add_argument('--strict', action='store_true', default=CONFIG['strict'],
                        help='Stop at the first malformed group')
    parser.add_argument('--chunk-size', type=int, default=CONFIG['chunk_size'],
                        help=f"Bytes read per chunk (default: {CONFIG['chunk_size']})")
    parser.add_argument('--workers', type=int, default=CONFIG['workers'],
                        help='Threads used to decode groups (default: %(default)s)')
    parser.add_argument('--log-level', default=CONFIG['debug_level'],
                        help='Logging level (default: %(default)s)')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='Do not print a diagnostic for malformed groups')
    parser.add_argument('-v', '--version', action='version',
                        version=f'%(prog)s {__version__}')

    args = parser.parse_args(argv)
    program_name = os.path.basename(parser.prog)

    if args.chunk_size < 1 or args.workers < 1:
        parser.error('--chunk-size and --workers must be positive')

    configure_logging(args.log_level)
    on_malformed = None if args.quiet else report_malformed

    input_stream = None
    output_stream = None

    try:
        if args.input_file == '-':
            input_stream = sys.stdin.buffer
        else:
            input_stream = open(args.input_file, 'rb')

        if args.output_file:
            output_stream = open(args.output_file, 'wb')
        else:
            output_stream = sys.stdout.buffer

        if args.line:
            ok = decode_line(input_stream.readline(), output_stream, strict=args.strict,
                             on_malformed=on_malformed)
        else:
            with StreamDecoder(output_stream, strict=args.strict, chunk_size=args.chunk_size,
                               workers=args.workers, on_malformed=on_malformed) as decoder:
                ok = decoder.decode_stream(input_stream)

        output_stream.flush()

    except OSError as e:
        if e.filename:
            sys.stderr.write(f"{program_name}: cannot open '{e.filename}': {e.strerror}\n")
        else:
            sys.stderr.write(f"{program_name}: {e}\n")
        logger.debug(f"I/O error: {e}")
        return 1
    finally:
        if input_stream is not None and input_stream is not sys.stdin.buffer:
            input_stream.close()
        if output_stream is not None and output_stream is not sys.stdout.buffer:
            output_stream.close()

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
