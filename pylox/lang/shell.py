"""Handles interactive/command-line mode for the Lox interpreter. Uses cmd as backend."""

import cmd


class Shell(cmd.Cmd):
    """Lox interpreter shell."""
    intro = "Welcome to Lox!\nType 'help' for more information, or 'exit' to leave."
    prompt = ">>> "
    secondary_prompt = "... "  # used for line continuations
    _tmp_prompt = ">>> "       # also used for prompt swapping in line continuations

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.sess = sess
        self._tmp_line = ""

    def default(self, line):
        """Executes arbitrary Lox code."""
        with self.sess.error_handler:  # needed because cmd.Cmd automatically exits on Exception
            line = self._tmp_line + line + "\n"

            if self.sess.preprocess_line(line):
                self._tmp_line = line
                self.prompt = self.secondary_prompt
            else:
                self._tmp_line = ""
                self.prompt = self._tmp_prompt
                self.sess.run(line)

    def do_help(self, arg):
        """Doesnt return docs, but rather a short intro."""
        print("Welcome to the Lox interpreter!\n\n"
              "Lox is a small dynamically typed language with closures, classes and single \n"
              "inheritance. Each line you type is run as soon as it is complete, and every \n"
              "variable, function and class you declare stays around for later lines.\n\n"
              "Try it out by typing 'var greeting = \"hello\";', then 'greeting * 3;'. The \n"
              "value of an expression statement is printed for you.")

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        if self._tmp_line:
            return self.default("")
        return ""

    def do_EOF(self, arg):
        """Exits interpreter."""
        print()
        return self.do_exit(arg)

    def do_exit(self, arg):
        """Exits interpreter."""
        return True
