import io
import unittest

from pylox.core.parser import parse
from pylox.core.printer import fprint, sprint


class PrinterTestCase(unittest.TestCase):

    def test_sprint(self):
        should_pass = {
            "print 1 + 2;": "(Program\n  (PrintStmt\n    (BinaryExpr\n      (LiteralExpr 1)\n      +\n"
                            "      (LiteralExpr 2))))",
            "var a;": "(Program\n  (VarDecl\n    a\n    nil))",
            "break;": "(Program\n  (BreakStmt))",
            "fun f() {}": "(Program\n  (FunDecl\n    f\n    (Function\n      []\n      [])))",
            "class A { static get x() { return this; } }":
                "(Program\n  (ClassDecl\n    A\n    nil\n    (MethodDecl\n      x\n      (Function\n        []\n"
                "        (ReturnStmt\n          (ThisExpr this)))\n      true\n      true\n      false)))",
        }
        for case, result in should_pass.items():
            program, __ = parse(case)
            self.assertEqual(result, sprint(program), case)

    def test_fprint(self):
        program, __ = parse("x;")
        out = io.StringIO()
        fprint(program, out)
        self.assertEqual("(Program\n  (ExprStmt\n    (VariableExpr x)))\n", out.getvalue())


if __name__ == '__main__':
    unittest.main()
