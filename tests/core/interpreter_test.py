import gc
import io
import unittest

from pylox.core.interpreter import Interpreter, interpret
from pylox.core.parser import parse
from pylox.core.resolver import resolve


def run(source, interpreter=None, repl_mode=False):
    """Runs source, returning (output, runtime error or None)."""
    program, errors = parse(source)
    assert not errors, errors
    bindings, errors = resolve(program, repl_mode)
    assert not errors, errors

    if interpreter is None:
        interpreter = Interpreter(stdout=io.StringIO(), clock=lambda: 42.0)
    interpreter.stdout.seek(0)
    interpreter.stdout.truncate()
    error = interpret(program, bindings, interpreter)
    return interpreter.stdout.getvalue(), error


class InterpreterTestCase(unittest.TestCase):

    def assertOutput(self, expected, source):
        output, error = run(source)
        self.assertIsNone(error, f"{source}: {error}")
        self.assertEqual(expected, output, source)

    def assertRuntimeError(self, msg, source):
        __, error = run(source)
        self.assertIsNotNone(error, source)
        self.assertEqual(msg, error.msg, source)
        return error

    def test_lexical_scoping(self):
        self.assertOutput("2\n1\n", "var a=1; { var a=2; print a; } print a;")
        self.assertOutput("global\nglobal\n",
                          'var a = "global"; { fun show() { print a; } show(); var a = "block"; show(); _ = a; }')

    def test_closure_counter(self):
        self.assertOutput("1\n2\n", "fun counter(){ var i=0; fun inc(){ i=i+1; return i; } return inc; } "
                                    "var c=counter(); print c(); print c();")

    def test_closures_share_scope(self):
        self.assertOutput("1\n1\n", "var getter; var setter; { var x = 0; fun g() { return x; } fun s(v) { x = v; } "
                                    "getter = g; setter = s; } setter(1); print getter(); print getter();")

    def test_for_loop_closures_capture_each_iteration(self):
        self.assertOutput("0\n1\n", "var first; var second; "
                                    "for (var i = 0; i < 2; i = i + 1) { "
                                    "  fun show() { print i; } "
                                    "  if (i == 0) first = show; else second = show; "
                                    "} "
                                    "first(); second();")

    def test_loops(self):
        should_pass = {
            "var i = 0; var s = 0; while (true) { i = i + 1; if (i > 5) break; if (i % 2 == 0) continue; "
            "s = s + i; } print s;": "9\n",
            "for (var i = 0; i < 5; i = i + 1) { if (i == 2) continue; print i; }": "0\n1\n3\n4\n",
            "fun f() { for (var i = 0; ; i = i + 1) { if (i == 3) return i; } } print f();": "3\n",
            "fun f() { while (true) { while (true) { return 1; } } } print f();": "1\n",
            "var i = 0; for (; i < 2;) i = i + 1; print i;": "2\n",
        }
        for case, result in should_pass.items():
            self.assertOutput(result, case)

    def test_forward_declared_globals(self):
        self.assertOutput("1\n", "fun f() { return x; } var x = 1; print f();")
        # globals are not tracked statically, so calling f before x is declared only fails when it runs
        error =self.assertRuntimeError("x has not been defined", "fun f() { return x; } print f(); var x = 1;")
        self.assertEqual("x", error.start.file.line(1)[error.start.column:error.end.column])

    def test_super_dispatch(self):
        self.assertOutput("A\nB\n", 'class A { m() { return "A"; } } '
                                    'class B < A { m() { return "B"; } test() { return super.m(); } } '
                                    'class C < B {} '
                                    'var c = C(); print c.test(); print c.m();')

    def test_super_binds_this(self):
        self.assertOutput("3\n", "class A { init(x) { this.x = x; } value() { return this.x; } } "
                                 "class B < A { init(x) { super.init(x + 1); } value() { return super.value() + 1; } } "
                                 "print B(1).value();")

    def test_getters_and_setters(self):
        self.assertOutput("100\n212\n",
                          "class Temp { "
                          "  init() { this.c = 0; } "
                          "  get f() { return this.c * 9 / 5 + 32; } "
                          "  set f(v) { this.c = (v - 32) * 5 / 9; } "
                          "} "
                          "var t = Temp(); t.f = 212; print t.c; print t.f;")
        self.assertRuntimeError("property 'x' of 'A' object is read-only",
                                "class A { get x() { return 1; } } var a = A(); a.x = 2;")

    def test_getter_is_not_shadowed_by_field(self):
        self.assertOutput("1\n", "class A { get x() { return 1; } } var a = A(); print a.x;")

    def test_static_members(self):
        should_pass = {
            "class M { static twice(n) { return n * 2; } } print M.twice(4);": "8\n",
            "class K { static me() { return this; } } print K.me();": "[class K]\n",
            "class C { static get n() { return 7; } } print C.n;": "7\n",
            "class C {} C.count = 3; print C.count;": "3\n",
            "class A { static make() { return 1; } } class B < A { static make() { return super.make() + 1; } } "
            "print B.make();": "2\n",
            "class A { static make() { return this(); } } class B < A {} print B.make();": "[B object]\n",
        }
        for case, result in should_pass.items():
            self.assertOutput(result, case)

    def test_constructors(self):
        should_pass = {
            "class P { init(x, y) { this.x = x; this.y = y; } } var p = P(1, 2); print p.x + p.y;": "3\n",
            "class P { init() { return; } } print P();": "[P object]\n",
            "class P { init() { this.n = 1; } } var p = P(); print p.init();": "[P object]\n",
        }
        for case, result in should_pass.items():
            self.assertOutput(result, case)

    def test_truthiness(self):
        self.assertOutput("zero\nempty\nno\nno\n", 'if (0) print "zero"; if ("") print "empty"; '
                                                  'if (nil) print "nil"; else print "no"; '
                                                  'if (false) print "false"; else print "no";')

    def test_values(self):
        should_pass = {
            'print 1 == 1; print 1 == "1"; print nil == nil; print "a" != "b"; print true == 1;':
                "true\nfalse\ntrue\ntrue\nfalse\n",
            'print "ab" + "cd"; print 3 * "ab"; print "ab" * 2; print 0 * "ab"; print "a" < "b";':
                "abcd\nababab\nabab\n\ntrue\n",
            "print 7 / 2; print 7 % 3; print -7 % 3; print 1.5 + 1.5; print 0.1 + 0.2; print -0;":
                "3.5\n1\n-1\n3\n0.30000000000000004\n0\n",
            'print true ? 1 : 2; print (1, 2); print nil or "x"; print false and 1; print 1 and 2; print !nil;':
                "1\n2\nx\nfalse\n2\ntrue\n",
            "print 1 < 2; print 2 <= 2; print 3 > 4; print 4 >= 5;": "true\ntrue\nfalse\nfalse\n",
            'print type(1); print type("s"); print type(nil); print type(true); print type(clock); '
            "class A {} print type(A()); print type(A);": "number\nstring\nnil\nbool\nfunction\nA\nA class\n",
            "fun f() {} print f; print clock; class A { m() {} } print A; print A(); print A().m; "
            "print fun () {};": "[function f]\n[built-in function clock]\n[class A]\n[A object]\n"
                                "[bound method A.m]\n[anonymous function]\n",
            "fun f() {} print f();": "nil\n",
        }
        for case, result in should_pass.items():
            self.assertOutput(result, case)

    def test_short_circuit(self):
        self.assertOutput("1\n", "var n = 0; fun bump() { n = n + 1; return true; } "
                                 "false and bump(); true or bump(); true and bump(); print n;")

    def test_clock_is_injectable(self):
        first, __ = run("print clock();")
        second, __ = run("print clock();")
        self.assertEqual("42\n", first)
        self.assertEqual(first, second)

    def test_runtime_errors(self):
        should_fail = {
            "print 1 / 0;": "cannot divide by 0",
            "print 1 % 0;": "cannot modulo by 0",
            "var x = 1; x();": "'number' object is not callable",
            'print "a"();': "'string' object is not callable",
            "fun f(a, b) { return a + b; } f(1);": "f() missing 1 argument: b",
            "fun f(a, b, c) { return a + b + c; } f();": "f() missing 3 arguments: a, b, and c",
            "fun f(a) { return a; } f(1, 2);": "f() accepts 1 argument but 2 were given",
            "fun f() {} f(1);": "f() accepts 0 arguments but 1 was given",
            "class A { init(x) { this.x = x; } } A();": "A() missing 1 argument: x",
            "class A {} print A().x;": "'A' object has no property 'x'",
            "class A {} print A.x;": "'A class' object has no property 'x'",
            'print "a".x;': "property access is not valid for 'string' object",
            "var n = 1; n.x = 2;": "property assignment is not valid for 'number' object",
            'print -"a";': "'-' operator cannot be used with type 'string'",
            'print 1 + "a";': "'+' operator cannot be used with types 'number' and 'string'",
            "print nil < 1;": "'<' operator cannot be used with types 'nil' and 'number'",
            'print 1.5 * "a";': "cannot multiply 'string' by non-integer 'number'",
            'print "a" * -1;': "cannot multiply 'string' by negative 'number'",
            "var B = 1; class A < B {}": "superclass must be a class",
            "class A { m() { return 1; } } class B < A { m() { return super.n(); } } B().m();":
                "'A' class has no method or getter 'n'",
            'error("boom");': "boom",
        }
        for case, result in should_fail.items():
            self.assertRuntimeError(result, case)

    def test_runtime_error_ranges(self):
        error = self.assertRuntimeError("cannot divide by 0", "print 1 / 0;")
        self.assertEqual((1, 6, 11), (error.start.line, error.start.column, error.end.column))

        error = self.assertRuntimeError("'number' object is not callable", "var x = 1;\nx(2);")
        self.assertEqual((2, 0, 1), (error.start.line, error.start.column, error.end.column))

    def test_stack_trace(self):
        error = self.assertRuntimeError("cannot divide by 0", "fun inner() { return 1 / 0; }\n"
                                                              "fun outer() { return inner(); }\n"
                                                              "outer();")
        self.assertEqual(["inner", "outer", ""], [frame.function for frame in error.trace])
        self.assertEqual([1, 2, 3], [frame.position.line for frame in error.trace])

    def test_stack_trace_through_methods(self):
        error = self.assertRuntimeError("boom", 'class A { get x() { error("boom"); return 1; } }\nprint A().x;')
        self.assertEqual(["x", ""], [frame.function for frame in error.trace])

    def test_deep_recursion(self):
        self.assertRuntimeError("maximum recursion depth exceeded", "fun f(n) { return f(n + 1); } f(0);")

    def test_recursion(self):
        self.assertOutput("610\n", "fun fib(n) { if (n < 2) return n; return fib(n - 1) + fib(n - 2); } print fib(15);")

    def test_state_survives_errors(self):
        interpreter = Interpreter(stdout=io.StringIO())
        run("var a = 1; fun f() { return 1 / 0; }", interpreter)

        __, error = run("f();", interpreter, repl_mode=True)
        self.assertEqual("cannot divide by 0", error.msg)
        self.assertEqual([], interpreter.frames)

        output, error = run("print a;", interpreter, repl_mode=True)
        self.assertIsNone(error)
        self.assertEqual("1\n", output)

    def test_repl_prints_expression_values(self):
        interpreter = Interpreter(stdout=io.StringIO(), repl=True)
        should_pass = {
            "1 + 2;": "3\n",
            "var a = 1;": "",
            "a = 2;": "",
            "nil;": "",
            "a;": "2\n",
            '"s" * 2;': "ss\n",
            "{ 1; }": "",
        }
        for case, result in should_pass.items():
            output, error = run(case, interpreter, repl_mode=True)
            self.assertIsNone(error, case)
            self.assertEqual(result, output, case)

    def test_repl_redeclaration(self):
        interpreter = Interpreter(stdout=io.StringIO())
        run("var a = 1;", interpreter, repl_mode=True)
        output, error = run("var a = a + 1; print a;", interpreter, repl_mode=True)
        self.assertIsNone(error)
        self.assertEqual("2\n", output)

    def test_lists(self):
        should_pass = {
            'print []; print [1, 2]; print [1, [true, nil], "s"];': "[]\n[1, 2]\n[1, [true, nil], s]\n",
            "var l = [1, 2, 3]; print l[0]; print l[2]; print l.length;": "1\n3\n3\n",
            "var l = [1, 2]; l[1] = 5; print l;": "[1, 5]\n",
            "var l = [[1], [2]]; l[1][0] = 3; print l;": "[[1], [3]]\n",
            "print [1] + [2, 3]; print [0] * 3; print 2 * [1, 2]; print [1] * 0;":
                "[1, 2, 3]\n[0, 0, 0]\n[1, 2, 1, 2]\n[]\n",
            "var l = []; l.push(1); l.push(2); print l.pop(); print l; print l.push(3);": "2\n[1]\nnil\n",
            "var p = [].push; print p;": "[built-in function push]\n",
            'print [1, 2] == [1, 2]; print [1] == [1, 2]; print [[1]] == [[1]]; print [1] != ["1"];':
                "true\nfalse\ntrue\ntrue\n",
            "var a = []; var b = a; b.push(1); print a;": "[1]\n",
            "print type([]);": "list\n",
            "var i = 0; fun next() { i = i + 1; return i; } var l = [0, 0, 0]; l[next()] = next(); print l;":
                "[0, 2, 0]\n",
        }
        for case, result in should_pass.items():
            self.assertOutput(result, case)

    def test_list_errors(self):
        should_fail = {
            "print [1][1.5];": "index (1.5) must be a non-negative integer",
            'print [1]["0"];': 'index ("0") must be a non-negative integer',
            "print [1][nil];": "index (nil) must be a non-negative integer",
            "print [1][-1];": "index (-1) must not be negative",
            "print [1, 2][2];": "index 2 out of bounds for list of length 2",
            "var l = []; l[0] = 1;": "index 0 out of bounds for list of length 0",
            "[].pop();": "pop from empty list",
            "print 1[0];": "'number' object is not indexable",
            'var s = "ab"; s[0] = "c";': "'string' object is not indexable",
            "print [].size;": "'list' object has no property 'size'",
            "var l = []; l.length = 2;": "property assignment is not valid for 'list' object",
            "print [1] + 1;": "'+' operator cannot be used with types 'list' and 'number'",
            "print [1] * 1.5;": "cannot multiply 'list' by non-integer 'number'",
            "[].push();": "push() missing 1 argument: value",
        }
        for case, result in should_fail.items():
            self.assertRuntimeError(result, case)

    def test_list_error_ranges(self):
        error = self.assertRuntimeError("index 3 out of bounds for list of length 1", "var l = [1];\nprint l[3];")
        self.assertEqual("l[3]", error.start.file.line(2)[error.start.column:error.end.column])

    def test_super_getters(self):
        self.assertOutput("2\n", "class A { init() { this.n = 1; } get twice() { return this.n * 2; } } "
                                 "class B < A { get twice() { return super.twice; } } print B().twice;")
        self.assertOutput("3\n", "class A { static get n() { return 3; } } "
                                 "class B < A { static m() { return super.n; } } print B.m();")
        self.assertRuntimeError("'A' class has no static method or getter 'n'",
                                "class A {} class B < A { static m() { return super.n; } } B.m();")

    def test_arity_and_property_error_ranges(self):
        source = "fun f(a) { return a; }\nprint f(1, 2);"
        error = self.assertRuntimeError("f() accepts 1 argument but 2 were given", source)
        self.assertEqual("f(1, 2)", error.start.file.line(2)[error.start.column:error.end.column])

        error = self.assertRuntimeError("'A' object has no property 'x'", "class A {}\nvar a = A();\nprint a.x;")
        self.assertEqual(3, error.start.line)
        self.assertEqual("a.x", error.start.file.line(3)[error.start.column:error.end.column])

    def test_arity_and_property_errors_are_not_fatal(self):
        interpreter = Interpreter(stdout=io.StringIO())
        run("fun f(a) { return a; } class A {} var a = A();", interpreter, repl_mode=True)

        for source, msg in [("f();", "f() missing 1 argument: a"), ("print a.x;", "'A' object has no property 'x'")]:
            __, error = run(source, interpreter, repl_mode=True)
            self.assertEqual(msg, error.msg, source)
            self.assertEqual([], interpreter.frames)

        output, error = run("a.x = f(4); print a.x;", interpreter, repl_mode=True)
        self.assertIsNone(error)
        self.assertEqual("4\n", output)

    def test_bindings_do_not_outlive_programs(self):
        interpreter = Interpreter(stdout=io.StringIO())
        run("fun f() { var x = 1; { var y = x + 1; return y; } }", interpreter, repl_mode=True)

        run("{ var a = 1; print a + f(); }", interpreter, repl_mode=True)
        gc.collect()
        size = len(interpreter.bindings)
        for __ in range(5):
            run("{ var a = 1; { var b = a; print b + f(); } }", interpreter, repl_mode=True)
        gc.collect()
        self.assertEqual(size, len(interpreter.bindings))

        output, error = run("print f();", interpreter, repl_mode=True)
        self.assertIsNone(error)
        self.assertEqual("2\n", output)


if __name__ == '__main__':
    unittest.main()
