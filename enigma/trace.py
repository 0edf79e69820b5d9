"""
Diagnostic trace records and sinks.

A machine optionally hands every intermediate stage of a key press to a
sink, which is any callable accepting a :class:`TraceRecord`. Where the
records end up (nowhere, the console, a file) is decided by whoever builds
the sink, never by the machine itself. Sinks holding a file or stream are
released with their ``close`` method.
"""
import itertools
import logging
import sys
from typing import NamedTuple

TRACE_DESTINATIONS = ('off', 'stdout', 'file')

_sink_ids = itertools.count()


class TraceRecord(NamedTuple):
    stage: str
    before: str
    after: str


class NullTraceSink:
    def __call__(self, record: TraceRecord):
        pass

    def close(self):
        pass


null_sink = NullTraceSink()


class ListTraceSink:
    """Collects all records, mostly useful for tests."""

    def __init__(self):
        self.records = []

    def __call__(self, record: TraceRecord):
        self.records.append(record)

    def stages(self):
        return [rec.stage for rec in self.records]

    def clear(self):
        self.records = []

    def close(self):
        pass


class LoggingTraceSink:
    """
    Writes records to ``logger``.

    Only the ``handlers`` passed in belong to the sink, :meth:`close` detaches
    and closes those and leaves any other handler of the logger alone.
    """

    def __init__(self, logger: logging.Logger, level: int = logging.DEBUG, handlers=()):
        self.logger = logger
        self.level = level
        self.handlers = list(handlers)
        for handler in self.handlers:
            logger.addHandler(handler)

    def __call__(self, record: TraceRecord):
        self.logger.log(self.level, '%s:\t%s -> %s', record.stage.upper(), record.before, record.after)

    def close(self):
        for handler in self.handlers:
            self.logger.removeHandler(handler)
            handler.close()
        self.handlers = []


def make_trace_sink(destination: str = 'off', filename: str = None):
    """
    :param destination: one of ``off``, ``stdout`` or ``file``
    :param filename: target file, required for ``file``
    """
    if destination not in TRACE_DESTINATIONS:
        raise ValueError(f'trace destination {destination} is not in {TRACE_DESTINATIONS}')
    if destination == 'off':
        return null_sink

    if destination == 'stdout':
        handler = logging.StreamHandler(sys.stdout)
    else:
        if filename is None:
            raise ValueError('a filename is needed to trace into a file')
        handler = logging.FileHandler(filename, mode='w', encoding='utf-8')
    handler.setFormatter(logging.Formatter('%(asctime)s.%(msecs)03d %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))

    # a private logger outside the logging registry, two machines never share handlers
    logger = logging.Logger(f'{__name__}.sink{next(_sink_ids)}', logging.DEBUG)
    logger.propagate = False
    return LoggingTraceSink(logger, handlers=[handler])
