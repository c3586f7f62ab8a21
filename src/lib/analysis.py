"""
Python analysis provider

Supplies the classification lists, diagnostics, quick info and emitted
output that the sample compiler composites. The compiler only relies on
the AnalysisProvider protocol; PythonAnalysisProvider is the stock
implementation, built on the standard library's tokenize, ast and dis
modules.

Every call takes an explicit AnalysisContext. The provider itself keeps
nothing but a version counter and a one-entry parse cache keyed on
(filename, version), so nothing from one sample can leak into the next.

Offsets are character offsets into the context content. ast reports
columns as UTF-8 byte offsets; LineIndex converts them.
"""

import ast
import builtins
import dis
import difflib
import io
import keyword
import sys
import tokenize
import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Set, Tuple

from ..models.directives import CompilerConfig
from ..models.spans import ClassifiedSpan, Diagnostic, DiagnosticMessage


PUNCTUATION = {'(', ')', '[', ']', '{', '}', ',', ':', ';', '.'}
FSTRING_TOKENS = {'FSTRING_START', 'FSTRING_MIDDLE', 'FSTRING_END'}
SKIPPED_TOKENS = {
    tokenize.NEWLINE, tokenize.NL, tokenize.INDENT, tokenize.DEDENT,
    tokenize.ENDMARKER, tokenize.ERRORTOKEN,
}
BUILTIN_NAMES: Set[str] = set(dir(builtins))
CONSTRUCTOR_NAMES = {
    'bool', 'bytearray', 'bytes', 'complex', 'dict', 'float', 'frozenset',
    'int', 'list', 'set', 'str', 'tuple',
}
# match statements (3.10+); empty tuples never match on older interpreters
MATCH_CAPTURES = tuple(getattr(ast, name) for name in ('MatchAs', 'MatchStar') if hasattr(ast, name))
MATCH_MAPPINGS = tuple(getattr(ast, name) for name in ('MatchMapping',) if hasattr(ast, name))


@dataclass(frozen=True)
class AnalysisContext:
    """
    Everything the provider needs for one sample

    Attributes:
        filename: Name reported in diagnostics and compiled code
        content: Clean source of the sample
        version: Provider version number issued for this content
        config: Analysis options after the sample's directives
    """
    filename: str
    content: str
    version: int
    config: CompilerConfig


class AnalysisProvider(Protocol):
    """Interface the sample compiler expects from an analysis provider"""

    def context_create(self, content: str, config: CompilerConfig) -> AnalysisContext: ...

    def classifications_syntactic(self, context: AnalysisContext) -> List[ClassifiedSpan]: ...

    def classifications_semantic(self, context: AnalysisContext) -> List[ClassifiedSpan]: ...

    def diagnostics_get(self, context: AnalysisContext) -> List[Diagnostic]: ...

    def quickInfo_get(self, context: AnalysisContext, position: int) -> Optional[str]: ...

    def output_emit(self, context: AnalysisContext) -> str: ...


class LineIndex:
    """
    Maps (line, column) pairs onto offsets into a block of text

    Lines are 1-based, columns 0-based, as tokenize and ast report them.
    """

    def __init__(self, content: str) -> None:
        self.content = content
        self.lines = content.split('\n')
        self.starts: List[int] = [0]
        for line in self.lines[:-1]:
            self.starts.append(self.starts[-1] + len(line) + 1)

    def offset(self, lineno: int, column: int) -> int:
        """Character offset of a character column, clamped to the text"""
        if lineno < 1:
            return 0
        if lineno > len(self.lines):
            return len(self.content)
        return min(self.starts[lineno - 1] + max(column, 0), len(self.content))

    def offset_fromBytes(self, lineno: int, byte_column: int) -> int:
        """Character offset of a UTF-8 byte column (as ast reports them)"""
        if lineno < 1 or lineno > len(self.lines):
            return self.offset(lineno, 0)
        encoded = self.lines[lineno - 1].encode('utf-8')
        column = len(encoded[:byte_column].decode('utf-8', errors='ignore'))
        return self.offset(lineno, column)


def word_at(content: str, position: int) -> Optional[Tuple[int, str]]:
    """
    Find the identifier covering an offset

    Returns:
        (start offset, identifier) or None if the offset is not inside one
    """
    if position < 0 or position >= len(content):
        return None

    def is_word(ch: str) -> bool:
        return ch.isalnum() or ch == '_'

    if not is_word(content[position]):
        return None
    start = position
    while start > 0 and is_word(content[start - 1]):
        start -= 1
    end = position
    while end < len(content) and is_word(content[end]):
        end += 1
    word = content[start:end]
    if not word.isidentifier():
        return None
    return start, word


def bindings_collect(tree: ast.AST) -> Set[str]:
    """Every name the module binds anywhere, in any scope"""
    bound: Set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
            bound.add(node.id)
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            bound.add(node.name)
        elif isinstance(node, ast.arg):
            bound.add(node.arg)
        elif isinstance(node, ast.alias):
            bound.add((node.asname or node.name).split('.')[0])
        elif isinstance(node, ast.ExceptHandler) and node.name:
            bound.add(node.name)
        elif isinstance(node, (ast.Global, ast.Nonlocal)):
            bound.update(node.names)
        elif isinstance(node, MATCH_CAPTURES) and node.name:
            bound.add(node.name)
        elif isinstance(node, MATCH_MAPPINGS) and node.rest:
            bound.add(node.rest)
    return bound


class PythonAnalysisProvider:
    """
    Analysis provider for Python samples

    Handles:
    - Syntactic classification from tokenize
    - Semantic classification of names from ast
    - Syntax errors, undefined names, unused imports and long lines
    - Quick info ("hover") text for identifiers
    - Disassembled bytecode as emitted output
    """

    def __init__(self) -> None:
        self.version = 0
        self._cache_key: Optional[Tuple[str, int]] = None
        self._cache_tree: Optional[ast.AST] = None
        self._cache_error: Optional[SyntaxError] = None

    def context_create(self, content: str, config: CompilerConfig) -> AnalysisContext:
        """
        Issue a fresh context for new content

        Bumps the version counter, which invalidates the parse cache.
        """
        self.version += 1
        return AnalysisContext(
            filename=config.filename, content=content, version=self.version, config=config
        )

    def tree_parse(self, context: AnalysisContext) -> Tuple[Optional[ast.AST], Optional[SyntaxError]]:
        """
        Parse the context content, cached per (filename, version)

        Returns:
            (tree, None) on success or (None, SyntaxError) on failure
        """
        key = (context.filename, context.version)
        if key == self._cache_key:
            return self._cache_tree, self._cache_error

        minor = min(int(context.config.target.split('.')[1]), sys.version_info[1])
        tree: Optional[ast.AST] = None
        error: Optional[SyntaxError] = None
        try:
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                tree = ast.parse(
                    context.content,
                    filename=context.filename,
                    mode=context.config.mode,
                    feature_version=(3, minor),
                )
        except SyntaxError as e:
            error = e

        self._cache_key = key
        self._cache_tree = tree
        self._cache_error = error
        return tree, error

    def classifications_syntactic(self, context: AnalysisContext) -> List[ClassifiedSpan]:
        """
        Classify every token of the content

        Tokenizing stops quietly at the first tokenizer error; the syntax
        error itself is reported by diagnostics_get().
        """
        index = LineIndex(context.content)
        spans: List[ClassifiedSpan] = []
        readline = io.StringIO(context.content).readline
        try:
            for tok in tokenize.generate_tokens(readline):
                if tok.type in SKIPPED_TOKENS:
                    continue
                start = index.offset(*tok.start)
                end = index.offset(*tok.end)
                if end <= start:
                    continue
                category = self.token_classify(tok)
                if category:
                    spans.append(ClassifiedSpan(start, end - start, category))
        except (tokenize.TokenError, SyntaxError):
            pass
        return spans

    def token_classify(self, tok: tokenize.TokenInfo) -> str:
        """Map one token onto a classification name"""
        if tok.type == tokenize.NAME:
            return 'keyword' if keyword.iskeyword(tok.string) else 'identifier'
        if tok.type == tokenize.NUMBER:
            return 'number'
        if tok.type == tokenize.STRING or tokenize.tok_name.get(tok.type) in FSTRING_TOKENS:
            return 'string'
        if tok.type == tokenize.COMMENT:
            return 'comment'
        if tok.type == tokenize.OP:
            return 'punctuation' if tok.string in PUNCTUATION else 'operator'
        return ''

    def classifications_semantic(self, context: AnalysisContext) -> List[ClassifiedSpan]:
        """
        Classify names by what they are bound to

        Categories: function, class, parameter, module, variable, builtin,
        property. Unbound names are left to the syntactic pass.
        """
        tree, _ = self.tree_parse(context)
        if tree is None:
            return []

        index = LineIndex(context.content)
        kinds = self.kinds_collect(tree)
        spans: Dict[int, ClassifiedSpan] = {}

        def add(position: int, name: str, category: str) -> None:
            # Positions inside older f-strings can be off; trust only exact hits
            if context.content[position:position + len(name)] == name:
                spans.setdefault(position, ClassifiedSpan(position, len(name), category))

        params: List[Set[str]] = []

        def visit(node: ast.AST) -> None:
            pushed = False
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda)):
                args = node.args
                names = {a.arg for a in args.posonlyargs + args.args + args.kwonlyargs}
                names.update(a.arg for a in (args.vararg, args.kwarg) if a is not None)
                params.append(names)
                pushed = True
                if not isinstance(node, ast.Lambda):
                    position = self.definition_locate(context.content, index, node)
                    if position is not None:
                        add(position, node.name, 'function')
            elif isinstance(node, ast.ClassDef):
                position = self.definition_locate(context.content, index, node)
                if position is not None:
                    add(position, node.name, 'class')
            elif isinstance(node, ast.arg):
                add(index.offset_fromBytes(node.lineno, node.col_offset), node.arg, 'parameter')
            elif isinstance(node, ast.Name):
                position = index.offset_fromBytes(node.lineno, node.col_offset)
                if any(node.id in scope for scope in params):
                    add(position, node.id, 'parameter')
                elif node.id in kinds:
                    add(position, node.id, kinds[node.id])
                elif node.id in BUILTIN_NAMES:
                    add(position, node.id, 'builtin')
            elif isinstance(node, ast.Attribute) and node.end_lineno == node.lineno:
                end = index.offset_fromBytes(node.end_lineno, node.end_col_offset)
                add(end - len(node.attr), node.attr, 'property')

            for child in ast.iter_child_nodes(node):
                visit(child)
            if pushed:
                params.pop()

        visit(tree)
        return [spans[position] for position in sorted(spans)]

    def kinds_collect(self, tree: ast.AST) -> Dict[str, str]:
        """Name -> semantic category for module-wide bindings"""
        kinds: Dict[str, str] = {}
        for node in ast.walk(tree):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                kinds[node.name] = 'function'
            elif isinstance(node, ast.ClassDef):
                kinds[node.name] = 'class'
            elif isinstance(node, ast.alias):
                kinds.setdefault((node.asname or node.name).split('.')[0], 'module')
            elif isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store):
                kinds.setdefault(node.id, 'variable')
        return kinds

    def definition_locate(self, content: str, index: LineIndex, node: ast.AST) -> Optional[int]:
        """Offset of the name in a def/class statement header"""
        start = index.offset_fromBytes(node.lineno, node.col_offset)
        line_end = content.find('\n', start)
        header = content[start:line_end if line_end != -1 else len(content)]
        keyword_name = 'class' if isinstance(node, ast.ClassDef) else 'def'
        at = header.find(keyword_name)
        if at == -1:
            return None
        at = header.find(node.name, at + len(keyword_name))
        return start + at if at != -1 else None

    def diagnostics_get(self, context: AnalysisContext) -> List[Diagnostic]:
        """
        Collect diagnostics for the content, ordered by position

        A syntax error is reported alone, since nothing else can be
        checked without a tree.
        """
        index = LineIndex(context.content)
        tree, error = self.tree_parse(context)
        if error is not None:
            return [self.syntaxError_toDiagnostic(error, index)]

        diagnostics: List[Diagnostic] = []
        config = context.config
        if tree is not None and config.no_undefined_names:
            diagnostics.extend(self.undefinedNames_find(tree, index, config))
        if tree is not None and config.no_unused_imports:
            diagnostics.extend(self.unusedImports_find(tree, index))
        if config.max_line_length > 0:
            diagnostics.extend(self.longLines_find(index, config.max_line_length))
        return sorted(diagnostics, key=lambda d: d.position)

    def syntaxError_toDiagnostic(self, error: SyntaxError, index: LineIndex) -> Diagnostic:
        lineno = error.lineno or 1
        column = (error.offset or 1) - 1
        position = index.offset(lineno, column)
        length = 1
        end_lineno = getattr(error, 'end_lineno', None)
        end_offset = getattr(error, 'end_offset', None)
        if end_lineno == lineno and end_offset and end_offset > (error.offset or 0):
            length = end_offset - (error.offset or 1)
        length = max(0, min(length, len(index.content) - position))
        return Diagnostic(
            position=position,
            length=length,
            message=DiagnosticMessage(error.msg),
            code='indentation-error' if isinstance(error, IndentationError) else 'syntax-error',
        )

    def undefinedNames_find(
        self, tree: ast.AST, index: LineIndex, config: CompilerConfig
    ) -> List[Diagnostic]:
        known = bindings_collect(tree) | BUILTIN_NAMES | set(config.builtins)
        candidates = sorted(bindings_collect(tree) | set(config.builtins))
        diagnostics = []
        for node in ast.walk(tree):
            if not (isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load)):
                continue
            if node.id in known:
                continue
            hint = None
            close = difflib.get_close_matches(node.id, candidates, n=1)
            if close:
                hint = DiagnosticMessage(f"Did you mean '{close[0]}'?")
            diagnostics.append(Diagnostic(
                position=index.offset_fromBytes(node.lineno, node.col_offset),
                length=len(node.id),
                message=DiagnosticMessage(f"Name '{node.id}' is not defined", hint),
                code='undefined-name',
            ))
        return diagnostics

    def unusedImports_find(self, tree: ast.AST, index: LineIndex) -> List[Diagnostic]:
        used = {
            node.id for node in ast.walk(tree)
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load)
        }
        diagnostics = []
        for node in ast.walk(tree):
            if not isinstance(node, (ast.Import, ast.ImportFrom)):
                continue
            for alias in node.names:
                bound = (alias.asname or alias.name).split('.')[0]
                if bound in used or alias.name == '*':
                    continue
                anchor = alias if hasattr(alias, 'lineno') else node
                start = index.offset_fromBytes(anchor.lineno, anchor.col_offset)
                if anchor.end_lineno == anchor.lineno:
                    end = index.offset_fromBytes(anchor.end_lineno, anchor.end_col_offset)
                else:
                    end = start + 1
                diagnostics.append(Diagnostic(
                    position=start,
                    length=max(end - start, 1),
                    message=DiagnosticMessage(f"'{alias.name}' imported but unused"),
                    code='unused-import',
                ))
        return diagnostics

    def longLines_find(self, index: LineIndex, limit: int) -> List[Diagnostic]:
        diagnostics = []
        for lineno, line in enumerate(index.lines, start=1):
            if len(line) > limit:
                diagnostics.append(Diagnostic(
                    position=index.offset(lineno, limit),
                    length=len(line) - limit,
                    message=DiagnosticMessage(f"Line too long ({len(line)} > {limit})"),
                    code='line-too-long',
                ))
        return diagnostics

    def quickInfo_get(self, context: AnalysisContext, position: int) -> Optional[str]:
        """
        Describe the identifier at an offset

        Example:
            content "x = 5", position 0 -> "(variable) x: int"
            content "def f(a): ...", position 4 -> "(function) def f(a)"

        Returns:
            Description text, or None for keywords, literals and unknowns
        """
        found = word_at(context.content, position)
        if found is None:
            return None
        start, name = found
        if keyword.iskeyword(name):
            return None

        tree, _ = self.tree_parse(context)
        if tree is None:
            return None

        index = LineIndex(context.content)
        definitions: Dict[str, ast.AST] = {}
        for node in ast.walk(tree):
            if isinstance(node, ast.arg):
                if index.offset_fromBytes(node.lineno, node.col_offset) == start:
                    return self.parameter_describe(node)
                definitions.setdefault(node.arg, node)
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                definitions.setdefault(node.name, node)
            elif isinstance(node, (ast.Import, ast.ImportFrom)):
                for alias in node.names:
                    definitions.setdefault((alias.asname or alias.name).split('.')[0], node)
            elif isinstance(node, (ast.Assign, ast.AnnAssign, ast.AugAssign, ast.For, ast.NamedExpr)):
                for target in self.assignment_targets(node):
                    definitions.setdefault(target, node)

        node = definitions.get(name)
        if node is None:
            if name in BUILTIN_NAMES:
                kind = 'class' if isinstance(getattr(builtins, name), type) else 'builtin'
                return f"({kind}) {name}"
            return None
        return self.definition_describe(name, node, definitions)

    def assignment_targets(self, node: ast.AST) -> List[str]:
        if isinstance(node, ast.Assign):
            targets = node.targets
        elif isinstance(node, (ast.AnnAssign, ast.AugAssign, ast.For, ast.NamedExpr)):
            targets = [node.target]
        else:
            return []
        names = []
        for target in targets:
            names.extend(
                n.id for n in ast.walk(target)
                if isinstance(n, ast.Name) and isinstance(n.ctx, ast.Store)
            )
        return names

    def parameter_describe(self, node: ast.arg) -> str:
        if node.annotation is not None:
            return f"(parameter) {node.arg}: {ast.unparse(node.annotation)}"
        return f"(parameter) {node.arg}"

    def definition_describe(self, name: str, node: ast.AST, definitions: Dict[str, ast.AST]) -> str:
        """Render quick info for the node that binds a name"""
        if isinstance(node, ast.arg):
            return self.parameter_describe(node)
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            prefix = 'async def' if isinstance(node, ast.AsyncFunctionDef) else 'def'
            returns = f" -> {ast.unparse(node.returns)}" if node.returns is not None else ''
            return f"(function) {prefix} {node.name}({ast.unparse(node.args)}){returns}"
        if isinstance(node, ast.ClassDef):
            bases = ', '.join(ast.unparse(b) for b in node.bases)
            return f"(class) class {node.name}({bases})" if bases else f"(class) class {node.name}"
        if isinstance(node, ast.Import):
            return f"(module) {name}"
        if isinstance(node, ast.ImportFrom):
            module = '.' * node.level + (node.module or '')
            for alias in node.names:
                if (alias.asname or alias.name) == name:
                    return f"(import) {alias.name} from {module}"
            return f"(import) {name} from {module}"
        if isinstance(node, ast.AnnAssign):
            return f"(variable) {name}: {ast.unparse(node.annotation)}"
        if isinstance(node, (ast.Assign, ast.NamedExpr)):
            inferred = self.type_infer(node.value, definitions, depth=0)
            return f"(variable) {name}: {inferred}" if inferred else f"(variable) {name}"
        return f"(variable) {name}"

    def type_infer(self, value: ast.AST, definitions: Dict[str, ast.AST], depth: int) -> Optional[str]:
        """Best-effort type name for an expression"""
        if depth > 8:
            return None
        if isinstance(value, ast.Constant):
            if value.value is None:
                return 'None'
            if value.value is Ellipsis:
                return 'ellipsis'
            return type(value.value).__name__
        if isinstance(value, (ast.List, ast.ListComp)):
            return 'list'
        if isinstance(value, (ast.Dict, ast.DictComp)):
            return 'dict'
        if isinstance(value, (ast.Set, ast.SetComp)):
            return 'set'
        if isinstance(value, ast.Tuple):
            return 'tuple'
        if isinstance(value, ast.JoinedStr):
            return 'str'
        if isinstance(value, ast.GeneratorExp):
            return 'Generator'
        if isinstance(value, ast.Lambda):
            return 'function'
        if isinstance(value, ast.Compare):
            return 'bool'
        if isinstance(value, ast.UnaryOp):
            if isinstance(value.op, ast.Not):
                return 'bool'
            return self.type_infer(value.operand, definitions, depth + 1)
        if isinstance(value, ast.BinOp):
            left = self.type_infer(value.left, definitions, depth + 1)
            right = self.type_infer(value.right, definitions, depth + 1)
            if left == right:
                return left
            if {left, right} <= {'int', 'float'}:
                return 'float'
            return None
        if isinstance(value, ast.Call) and isinstance(value.func, ast.Name):
            callee = definitions.get(value.func.id)
            if isinstance(callee, ast.ClassDef):
                return callee.name
            if isinstance(callee, (ast.FunctionDef, ast.AsyncFunctionDef)) and callee.returns is not None:
                return ast.unparse(callee.returns)
            if callee is None and value.func.id in CONSTRUCTOR_NAMES:
                return value.func.id
            return None
        if isinstance(value, ast.Name):
            bound = definitions.get(value.id)
            if isinstance(bound, (ast.Assign, ast.NamedExpr)):
                return self.type_infer(bound.value, definitions, depth + 1)
            if isinstance(bound, ast.AnnAssign):
                return ast.unparse(bound.annotation)
        return None

    def output_emit(self, context: AnalysisContext) -> str:
        """
        Disassembled bytecode for the content

        Returns:
            dis output, or "" if the content does not compile
        """
        try:
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                code = compile(
                    context.content,
                    context.filename,
                    context.config.mode,
                    optimize=context.config.optimize,
                )
        except SyntaxError:
            return ''
        buffer = io.StringIO()
        dis.dis(code, file=buffer)
        return buffer.getvalue()
