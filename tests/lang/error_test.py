import io
import unittest

from pylox.core.interpreter import StackFrame
from pylox.core.token import File, Position
from pylox.lang.error import ErrorHandler, LoxError, LoxErrors, LoxRuntimeError


def span(file, start, end):
    return Position(file, *start), Position(file, *end)


class LoxErrorTestCase(unittest.TestCase):

    def test_describe(self):
        file = File("test.lox", "print 1 / 0;")
        error = LoxError("cannot divide by 0", *span(file, (1, 6), (1, 11)))
        self.assertEqual("test.lox:1:7: error: cannot divide by 0\nprint 1 / 0;\n      ~~~~~", error.describe())
        self.assertEqual(error.describe(), str(error))

    def test_describe_unnamed(self):
        file = File("", "print -x;")
        error = LoxError("x has not been declared", *span(file, (1, 7), (1, 8)))
        self.assertEqual("1:8: error: x has not been declared\nprint -x;\n       ~", error.describe())

    def test_describe_multiline(self):
        file = File("", 'var s = "ab\ncd";')
        error = LoxError("unterminated string literal", *span(file, (1, 8), (2, 3)))
        self.assertEqual('1:9: error: unterminated string literal\nvar s = "ab\n        ~~~\ncd";\n~~~',
                         error.describe())

    def test_describe_empty_range(self):
        file = File("", "print 1")
        error = LoxError("expected ';'", *span(file, (1, 7), (1, 7)))
        self.assertEqual("1:8: error: expected ';'\nprint 1\n       ~", error.describe())

    def test_describe_without_position(self):
        self.assertEqual("error: 'x.lox' could not be opened", LoxError("'x.lox' could not be opened").describe())

    def test_stack_trace(self):
        file = File("test.lox", "fun f() {\n  return 1 / 0;\n}\nf();")
        start, end = span(file, (2, 9), (2, 14))
        trace = [StackFrame("f", start), StackFrame("", Position(file, 4, 0))]
        error = LoxRuntimeError("cannot divide by 0", start, end, trace)

        self.assertEqual("test.lox:2:10: error: cannot divide by 0\n"
                         "  return 1 / 0;\n"
                         "         ~~~~~\n"
                         "Stack Trace (most recent call first):\n"
                         "  test.lox:2:10  in f  return 1 / 0;\n"
                         "  test.lox:4:1         f();", error.describe())

    def test_errors_sorted(self):
        file = File("", "a\nb")
        errors = LoxErrors([LoxError("second", Position(file, 2, 0)), LoxError("first", Position(file, 1, 0))])

        self.assertEqual(2, len(errors))
        self.assertEqual(["first", "second"], [error.msg for error in errors])
        self.assertEqual("1:1: error: first\na\n~\n2:1: error: second\nb\n~", str(errors))


class ErrorHandlerTestCase(unittest.TestCase):

    def setUp(self):
        self.stream = io.StringIO()

    def test_fatal(self):
        with self.assertRaises(SystemExit) as context:
            with ErrorHandler(stream=self.stream, color=False):
                raise LoxError("oops")
        self.assertEqual(1, context.exception.code)
        self.assertEqual("error: oops\n", self.stream.getvalue())

    def test_non_fatal(self):
        handler = ErrorHandler(fatal=False, stream=self.stream, color=False)
        for msg in ("first", "second"):
            with handler:
                raise LoxError(msg)
        with handler:
            raise LoxErrors([LoxError("third")])
        self.assertEqual("error: first\nerror: second\nerror: third\n", self.stream.getvalue())

    def test_recursion(self):
        with ErrorHandler(fatal=False, stream=self.stream, color=False):
            raise RecursionError()
        self.assertEqual("error: maximum recursion depth exceeded\n", self.stream.getvalue())

    def test_internal(self):
        with self.assertRaises(ValueError):
            with ErrorHandler(fatal=False, stream=self.stream, color=False):
                raise ValueError("boom")
        self.assertEqual("[internal] error: unknown error: 'ValueError: boom'\n", self.stream.getvalue())

    def test_system_exit_passes_through(self):
        with self.assertRaises(SystemExit):
            with ErrorHandler(fatal=False, stream=self.stream, color=False):
                raise SystemExit(0)
        self.assertEqual("", self.stream.getvalue())


if __name__ == '__main__':
    unittest.main()
