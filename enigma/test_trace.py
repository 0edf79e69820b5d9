import contextlib
import io
import logging
import os
import tempfile

import unittest as ut

import enigma
from enigma import trace


class SinkTest(ut.TestCase):
    def test_off(self):
        self.assertIs(enigma.make_trace_sink('off'), trace.null_sink)

    def test_invalid_destination(self):
        with self.assertRaises(ValueError):
            enigma.make_trace_sink('printer')
        with self.assertRaises(ValueError):
            enigma.make_trace_sink('file')

    def test_logging_sink(self):
        logger = logging.getLogger('enigma.test_trace')
        sink = enigma.LoggingTraceSink(logger)
        with self.assertLogs(logger, level='DEBUG') as cm:
            sink(enigma.TraceRecord('reflector', 'D', 'H'))
        self.assertEqual(cm.output, ['DEBUG:enigma.test_trace:REFLECTOR:\tD -> H'])

    def test_file_sink(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = os.path.join(tmp_dir, 'trace.log')
            sink = enigma.make_trace_sink('file', path)
            machine = enigma.build_from_config(enigma.default_config(), trace=sink)
            machine.encode_message('AA')
            sink.close()
            self.assertEqual(sink.logger.handlers, [])
            with open(path, 'r') as read_file:
                lines = read_file.read().splitlines()
        self.assertEqual(len(lines), 20)
        self.assertTrue(lines[0].endswith('STEP I:\tA -> B'))
        self.assertTrue(lines[-1].endswith('PLUGBOARD:\tT -> T'))

    def test_sinks_do_not_share_loggers(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            first = enigma.make_trace_sink('file', os.path.join(tmp_dir, 'first.log'))
            second = enigma.make_trace_sink('file', os.path.join(tmp_dir, 'second.log'))
            self.assertIsNot(first.logger, second.logger)
            self.assertFalse(first.logger.propagate)
            self.assertNotIn(first.logger.name, logging.Logger.manager.loggerDict)
            for sink in (first, second):
                sink.close()

    def test_close_keeps_foreign_handlers(self):
        logger = logging.getLogger('enigma.test_trace.close')
        foreign = logging.NullHandler()
        owned = logging.NullHandler()
        logger.addHandler(foreign)
        try:
            sink = enigma.LoggingTraceSink(logger, handlers=[owned])
            self.assertIn(owned, logger.handlers)
            sink.close()
            self.assertNotIn(owned, logger.handlers)
            self.assertIn(foreign, logger.handlers)
            # closing twice is harmless
            sink.close()
        finally:
            logger.removeHandler(foreign)

    def test_stdout_sink(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            sink = enigma.make_trace_sink('stdout')
        try:
            sink(enigma.TraceRecord('plugboard', 'A', 'B'))
        finally:
            sink.close()
        self.assertTrue(out.getvalue().strip().endswith('PLUGBOARD:\tA -> B'))
        trace.null_sink.close()

    def test_list_sink(self):
        sink = enigma.ListTraceSink()
        sink(enigma.TraceRecord('plugboard', 'A', 'B'))
        self.assertEqual(sink.stages(), ['plugboard'])
        sink.clear()
        self.assertEqual(sink.records, [])


if __name__ == '__main__':
    ut.main()
