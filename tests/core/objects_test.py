import unittest

from pylox.core.environment import Environment, UNDEFINED
from pylox.core.objects import (LoxBool, LoxClass, LoxInstance, LoxNumber, LoxString, NIL, TRUE, FALSE,
                                format_number, join_names)
from pylox.core.parser import parse
from pylox.lang.error import LoxRuntimeError


class ObjectsTestCase(unittest.TestCase):

    def test_format_number(self):
        should_pass = {
            1.0: "1",
            0.5: "0.5",
            -2.25: "-2.25",
            1e21: "1000000000000000000000",
            1e-7: "0.0000001",
            0.1 + 0.2: "0.30000000000000004",
            -0.0: "0",
            float("inf"): "inf",
        }
        for case, result in should_pass.items():
            self.assertEqual(result, format_number(case), case)

    def test_join_names(self):
        should_pass = {
            ("a",): "a",
            ("a", "b"): "a and b",
            ("a", "b", "c"): "a, b, and c",
        }
        for case, result in should_pass.items():
            self.assertEqual(result, join_names(list(case)), case)

    def test_equality(self):
        self.assertTrue(LoxNumber(1).equals(LoxNumber(1.0)))
        self.assertFalse(LoxNumber(1).equals(LoxString("1")))
        self.assertFalse(LoxNumber(1).equals(TRUE))
        self.assertTrue(NIL.equals(NIL))
        self.assertFalse(NIL.equals(FALSE))
        self.assertFalse(LoxNumber(float("nan")).equals(LoxNumber(float("nan"))))

        klass = LoxClass("A")
        self.assertTrue(klass.equals(klass))
        self.assertFalse(LoxInstance(klass).equals(LoxInstance(klass)))

    def test_truthiness(self):
        should_pass = {
            NIL: False,
            FALSE: False,
            TRUE: True,
            LoxNumber(0): True,
            LoxString(""): True,
            LoxClass("A"): True,
        }
        for case, result in should_pass.items():
            self.assertEqual(result, case.truthy(), case)

    def test_bool_singletons(self):
        self.assertIs(TRUE, LoxBool.of(1 < 2))
        self.assertIs(FALSE, LoxBool.of(""))

    def test_type_names(self):
        klass = LoxClass("Point")
        should_pass = {
            LoxNumber(1): "number",
            LoxString("s"): "string",
            TRUE: "bool",
            NIL: "nil",
            klass: "Point class",
            LoxInstance(klass): "Point",
        }
        for case, result in should_pass.items():
            self.assertEqual(result, case.type_name, case)


class EnvironmentTestCase(unittest.TestCase):

    def setUp(self):
        program, __ = parse("x;")
        self.node = program.stmts[0].expr

    def test_lookup(self):
        outer = Environment()
        outer.define("a", LoxNumber(1))
        inner = outer.child().child()

        self.assertIs(outer, inner.ancestor(2))
        self.assertEqual("1", str(inner.get_at(2, "a", self.node)))

        inner.assign_at(2, "a", LoxNumber(2), self.node)
        self.assertEqual("2", str(outer.get("a", self.node)))

    def test_errors(self):
        env = Environment()
        env.declare("a")
        self.assertIs(UNDEFINED, env.values["a"])

        with self.assertRaises(LoxRuntimeError) as context:
            env.get("a", self.node)
        self.assertEqual("a has not been defined", context.exception.msg)

        with self.assertRaises(LoxRuntimeError) as context:
            env.get("b", self.node)
        self.assertEqual("b has not been declared", context.exception.msg)

        with self.assertRaises(LoxRuntimeError) as context:
            env.assign("b", NIL, self.node)
        self.assertEqual("b has not been declared", context.exception.msg)

    def test_copy_is_independent(self):
        parent = Environment()
        env = parent.child()
        env.define("i", LoxNumber(0))

        copy = env.copy()
        copy.define("i", LoxNumber(1))
        self.assertIs(parent, copy.parent)
        self.assertEqual("0", str(env.values["i"]))


if __name__ == '__main__':
    unittest.main()
