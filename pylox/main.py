"""Runs .lox files, -c programs or the interactive shell, inside the error handling context manager. Called from the
pylox console script.
"""

import argparse
import sys

from pylox.lang.error import ErrorHandler
from pylox.lang.session import Session
from pylox.lang.shell import Shell

RECURSION_LIMIT = 10 ** 4  # each Lox call takes several Python frames


def main(argv=None):
    """Runs the Lox interpreter. Called from the pylox console script."""
    assert sys.version_info >= (3, 7), "pylox cannot be run with python < 3.7"

    with ErrorHandler() as error_handler:
        parser = argparse.ArgumentParser(prog="pylox")
        parser.add_argument("file", help="file to interpret and run (if empty, goes to command-line mode)", nargs="?")
        parser.add_argument("-c", dest="command", metavar="SOURCE", help="program passed in as a string")
        parser.add_argument("-p", "--print-ast", action="store_true", help="print the AST instead of running")
        args = parser.parse_args(argv)

        sys.setrecursionlimit(max(sys.getrecursionlimit(), RECURSION_LIMIT))

        if args.command is not None:
            Session(error_handler, print_ast=args.print_ast).run(args.command)
        elif args.file is not None:
            Session(error_handler, print_ast=args.print_ast).run_file(args.file)
        else:
            Shell(Session(error_handler, cmd_line=True, print_ast=args.print_ast)).cmdloop()


if __name__ == "__main__":
    main()
