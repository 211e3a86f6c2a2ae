"""Builds a call graph and per-function control-flow graphs from C sources."""

from pathlib import Path
from typing import Iterable

from loguru import logger
from tree_sitter import Node, Parser

from ..graph.program import BasicBlock, Function, Program
from ..parser_loader import load_c_parser
from ..utils.ast_helpers import (
    find_nodes_by_type,
    get_declarator_name,
    get_function_name,
    get_line_number,
    get_node_text,
    is_function_prototype,
    is_inside_function,
    iter_calls,
    iter_declarators,
)

C_EXTENSIONS = {".c", ".h"}


class _CFGBuilder:
    """Lowers one function body into basic blocks.

    Statement handlers take the block control enters in and return the block
    control leaves from, or None when the statement never falls through
    (return, break, continue, goto).
    """

    def __init__(self, function: Function, program: Program, file_scope: dict[str, bool]):
        self.function = function
        self.program = program
        # Innermost scope last; maps a name to True for variables, False for functions
        self.scopes: list[dict[str, bool]] = [file_scope, {}]
        self.labels: dict[str, BasicBlock] = {}
        self.break_targets: list[BasicBlock] = []
        self.continue_targets: list[BasicBlock] = []

    def build(self, declarator: Node, body: Node) -> None:
        for parameter in find_nodes_by_type(declarator, "parameter_declaration"):
            self._declare(parameter)
        entry = self._new_block("entry")
        self._statement(body, entry)

    def _declare(self, declaration: Node) -> None:
        for declarator in iter_declarators(declaration):
            name = get_declarator_name(declarator)
            if name:
                self.scopes[-1][name] = not is_function_prototype(declarator)

    def _is_variable(self, name: str) -> bool:
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        return False

    def _scoped(self, visit, *args):
        self.scopes.append({})
        try:
            return visit(*args)
        finally:
            self.scopes.pop()

    def _new_block(self, label: str) -> BasicBlock:
        return self.function.new_block(f"{label}.{len(self.function.blocks)}")

    def _label_block(self, name: str) -> BasicBlock:
        if name not in self.labels:
            self.labels[name] = self._new_block(f"label.{name}")
        return self.labels[name]

    def _join(self, ends: list[BasicBlock | None], label: str) -> BasicBlock | None:
        reached = [end for end in ends if end is not None]
        if not reached:
            return None
        join = self._new_block(label)
        for end in reached:
            end.add_successor(join)
        return join

    def _callee(self, call: Node) -> Function | None:
        target = call.child_by_field_name("function")
        while target is not None and target.type == "parenthesized_expression":
            target = target.named_children[0] if target.named_children else None
        if target is None or target.type != "identifier":
            return None
        name = get_node_text(target)
        if self._is_variable(name):
            # Call through a function pointer variable
            return None
        return self.program.declare(name)

    def _add_calls(self, node: Node | None, block: BasicBlock) -> None:
        for call in iter_calls(node):
            block.add_call(self._callee(call), get_line_number(call))

    def _statement(self, node: Node | None, current: BasicBlock) -> BasicBlock | None:
        if node is None:
            return current
        handler = getattr(self, f"_visit_{node.type}", None)
        if handler is not None:
            return handler(node, current)
        self._add_calls(node, current)
        return current

    def _statements(
        self, nodes: Iterable[Node], current: BasicBlock | None
    ) -> BasicBlock | None:
        for child in nodes:
            if child.type == "comment":
                continue
            if current is None:
                if child.type != "labeled_statement":
                    # Unreachable code still gets blocks, just no predecessors
                    current = self._new_block("dead")
                else:
                    current = self._label_block(
                        get_node_text(child.child_by_field_name("label"))
                    )
            current = self._statement(child, current)
        return current

    def _visit_compound_statement(self, node: Node, current: BasicBlock) -> BasicBlock | None:
        return self._scoped(self._statements, node.named_children, current)

    def _visit_declaration(self, node: Node, current: BasicBlock) -> BasicBlock:
        self._add_calls(node, current)
        self._declare(node)
        return current

    def _visit_return_statement(self, node: Node, current: BasicBlock) -> None:
        self._add_calls(node, current)
        return None

    def _visit_break_statement(self, node: Node, current: BasicBlock) -> None:
        if self.break_targets:
            current.add_successor(self.break_targets[-1])
        return None

    def _visit_continue_statement(self, node: Node, current: BasicBlock) -> None:
        if self.continue_targets:
            current.add_successor(self.continue_targets[-1])
        return None

    def _visit_goto_statement(self, node: Node, current: BasicBlock) -> None:
        label = get_node_text(node.child_by_field_name("label"))
        current.add_successor(self._label_block(label))
        return None

    def _visit_labeled_statement(self, node: Node, current: BasicBlock) -> BasicBlock | None:
        label = node.child_by_field_name("label")
        target = self._label_block(get_node_text(label))
        if current is not target:
            current.add_successor(target)
        inner = [child for child in node.named_children if child != label]
        return self._statements(inner, target)

    def _visit_if_statement(self, node: Node, current: BasicBlock) -> BasicBlock | None:
        self._add_calls(node.child_by_field_name("condition"), current)

        then_block = self._new_block("if.then")
        current.add_successor(then_block)
        then_end = self._statement(node.child_by_field_name("consequence"), then_block)

        alternative = node.child_by_field_name("alternative")
        if alternative is not None and alternative.type == "else_clause":
            branches = [c for c in alternative.named_children if c.type != "comment"]
            alternative = branches[0] if branches else None

        if alternative is not None:
            else_block = self._new_block("if.else")
            current.add_successor(else_block)
            else_end = self._statement(alternative, else_block)
        else:
            else_end = current
        return self._join([then_end, else_end], "if.end")

    def _loop_body(
        self, node: Node | None, entry: BasicBlock, exit_block: BasicBlock, next_block: BasicBlock
    ) -> BasicBlock | None:
        self.break_targets.append(exit_block)
        self.continue_targets.append(next_block)
        try:
            if node is None:
                return entry
            return self._statement(node, entry)
        finally:
            self.break_targets.pop()
            self.continue_targets.pop()

    def _visit_while_statement(self, node: Node, current: BasicBlock) -> BasicBlock:
        header = self._new_block("while.cond")
        current.add_successor(header)
        self._add_calls(node.child_by_field_name("condition"), header)

        body = self._new_block("while.body")
        exit_block = self._new_block("while.end")
        header.add_successor(body)
        header.add_successor(exit_block)

        body_end = self._loop_body(node.child_by_field_name("body"), body, exit_block, header)
        if body_end is not None:
            body_end.add_successor(header)
        return exit_block

    def _visit_do_statement(self, node: Node, current: BasicBlock) -> BasicBlock:
        body = self._new_block("do.body")
        current.add_successor(body)
        condition = self._new_block("do.cond")
        exit_block = self._new_block("do.end")

        body_end = self._loop_body(node.child_by_field_name("body"), body, exit_block, condition)
        if body_end is not None:
            body_end.add_successor(condition)

        self._add_calls(node.child_by_field_name("condition"), condition)
        condition.add_successor(body)
        condition.add_successor(exit_block)
        return exit_block

    def _visit_for_statement(self, node: Node, current: BasicBlock) -> BasicBlock:
        return self._scoped(self._for_loop, node, current)

    def _for_loop(self, node: Node, current: BasicBlock) -> BasicBlock:
        initializer = node.child_by_field_name("initializer")
        self._add_calls(initializer, current)
        if initializer is not None and initializer.type == "declaration":
            self._declare(initializer)

        header = self._new_block("for.cond")
        current.add_successor(header)
        condition = node.child_by_field_name("condition")
        self._add_calls(condition, header)

        body = self._new_block("for.body")
        update = self._new_block("for.inc")
        exit_block = self._new_block("for.end")
        header.add_successor(body)
        if condition is not None:
            header.add_successor(exit_block)

        body_end = self._loop_body(node.child_by_field_name("body"), body, exit_block, update)
        if body_end is not None:
            body_end.add_successor(update)

        self._add_calls(node.child_by_field_name("update"), update)
        update.add_successor(header)
        return exit_block

    def _visit_switch_statement(self, node: Node, current: BasicBlock) -> BasicBlock:
        return self._scoped(self._switch, node, current)

    def _switch(self, node: Node, current: BasicBlock) -> BasicBlock:
        self._add_calls(node.child_by_field_name("condition"), current)
        exit_block = self._new_block("sw.end")
        body = node.child_by_field_name("body")

        has_default = False
        previous_end: BasicBlock | None = None
        self.break_targets.append(exit_block)
        try:
            for child in body.named_children if body is not None else []:
                if child.type == "comment":
                    continue
                if child.type != "case_statement":
                    previous_end = self._statements([child], previous_end)
                    continue

                is_default = bool(child.children) and child.children[0].type == "default"
                has_default = has_default or is_default
                case_block = self._new_block("sw.default" if is_default else "sw.case")
                current.add_successor(case_block)
                if previous_end is not None:
                    # Fall through from the previous case
                    previous_end.add_successor(case_block)

                value = child.child_by_field_name("value")
                statements = [c for c in child.named_children if c != value]
                previous_end = self._statements(statements, case_block)
        finally:
            self.break_targets.pop()

        if previous_end is not None:
            previous_end.add_successor(exit_block)
        if not has_default:
            current.add_successor(exit_block)
        return exit_block


class CFrontend:
    """Turns C translation units into a :class:`Program`.

    Defined functions get a control-flow graph; prototypes and callees that
    are never defined become body-less functions. Calls through function
    pointers (parameters, locals and globals) are recorded as indirect.
    """

    def __init__(self, parser: Parser | None = None):
        self.parser = parser or load_c_parser()

    def parse_source(self, file_path: str, content: str) -> Program:
        """Build a program from a single source string."""
        return self.build_program([(file_path, content)])

    def load_files(self, paths: Iterable[Path]) -> Program:
        sources = []
        for path in paths:
            path = Path(path)
            sources.append((str(path), path.read_text(encoding="utf-8", errors="replace")))
        return self.build_program(sources)

    def build_program(self, sources: Iterable[tuple[str, str]]) -> Program:
        program = Program()
        trees = []

        # Declare every prototype before any body is lowered
        for file_path, content in sources:
            tree = self.parser.parse(bytes(content, "utf8"))
            if tree.root_node.has_error:
                logger.warning(f"Parse errors in {file_path}")
            file_scope = self._collect_file_scope(tree.root_node, program)
            trees.append((file_path, tree.root_node, file_scope))

        for file_path, root, file_scope in trees:
            for definition in find_nodes_by_type(root, "function_definition"):
                self._define_function(definition, file_path, program, file_scope)

        logger.info(
            f"Built program with {len(program)} functions "
            f"({sum(1 for f in program if f.has_body)} defined)"
        )
        return program

    def _collect_file_scope(self, root: Node, program: Program) -> dict[str, bool]:
        """Declare prototypes and map file-scope names to whether they are variables."""
        scope: dict[str, bool] = {}
        for declaration in find_nodes_by_type(root, "declaration"):
            if is_inside_function(declaration):
                continue
            for declarator in iter_declarators(declaration):
                name = get_declarator_name(declarator)
                if not name:
                    continue
                if is_function_prototype(declarator):
                    program.declare(name)
                    scope[name] = False
                else:
                    scope[name] = True
        for definition in find_nodes_by_type(root, "function_definition"):
            name = get_function_name(definition)
            if name:
                scope[name] = False
        return scope

    def _define_function(
        self, definition: Node, file_path: str, program: Program, file_scope: dict[str, bool]
    ) -> None:
        name = get_function_name(definition)
        body = definition.child_by_field_name("body")
        if not name or body is None:
            return

        function = program.declare(name)
        if function.has_body:
            logger.warning(
                f"Ignoring redefinition of {name} in {file_path} "
                f"(first defined in {function.file_path})"
            )
            return

        function.file_path = file_path
        function.start_line = get_line_number(definition)
        builder = _CFGBuilder(function, program, file_scope)
        builder.build(definition.child_by_field_name("declarator"), body)
        logger.debug(f"Built CFG for {name}: {len(function.blocks)} blocks")
