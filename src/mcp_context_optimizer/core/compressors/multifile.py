"""Cross-file compression for sets of already-loaded source files.

Shared imports, types and constants are extracted once; files can then be
rendered deduplicated, as signature-only skeletons, or grouped into
dependency-connected chunks under a token cap.
"""

from __future__ import annotations

import fnmatch
import logging
import posixpath
import re
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ..models import reduction_percent
from ..tokens import TokenCounter, count_tokens

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 50_000
MAX_RENDERED_CHUNKS = 3

_EXTENSION_LANGUAGES = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".pyi": "python",
}


class MultiFileStrategy(str, Enum):
    DEDUPLICATE = "deduplicate"
    SKELETON = "skeleton"
    SMART_CHUNK = "smart-chunk"


@dataclass(frozen=True, slots=True)
class FileContext:
    path: str
    content: str
    language: str | None = None

    @property
    def lang(self) -> str:
        if self.language:
            return self.language.lower()
        ext = posixpath.splitext(self.path.replace("\\", "/"))[1].lower()
        return _EXTENSION_LANGUAGES.get(ext, "unknown")


@dataclass(frozen=True, slots=True)
class ImportInfo:
    source: str
    names: tuple[str, ...]
    statement: str
    span: tuple[int, int]


@dataclass(frozen=True, slots=True)
class Declaration:
    name: str
    kind: str  # interface | type | class | enum
    text: str
    span: tuple[int, int]


@dataclass(frozen=True, slots=True)
class Constant:
    name: str
    value: str
    span: tuple[int, int]


@dataclass(frozen=True, slots=True)
class FileStructure:
    imports: list[ImportInfo] = field(default_factory=list)
    declarations: list[Declaration] = field(default_factory=list)
    constants: list[Constant] = field(default_factory=list)


class StructureExtractor(Protocol):
    """Supplies imports/declarations/constants for one file."""

    def extract(self, file: FileContext) -> FileStructure:
        ...


_TS_NAMED_IMPORT_RE = re.compile(
    r"^import\s+(?:type\s+)?\{(?P<names>[^}]*)\}\s*from\s*['\"](?P<src>[^'\"]+)['\"];?[ \t]*$",
    re.MULTILINE,
)
_TS_DEFAULT_IMPORT_RE = re.compile(
    r"^import\s+(?:type\s+)?(?P<default>\*\s+as\s+\w+|\w+)(?:\s*,\s*\{(?P<names>[^}]*)\})?"
    r"\s+from\s+['\"](?P<src>[^'\"]+)['\"];?[ \t]*$",
    re.MULTILINE,
)
_TS_SIDE_EFFECT_IMPORT_RE = re.compile(r"^import\s+['\"](?P<src>[^'\"]+)['\"];?[ \t]*$", re.MULTILINE)
_TS_DECL_RE = re.compile(
    r"^(?:export\s+)?(?:default\s+)?(?:declare\s+)?(?:abstract\s+)?"
    r"(?P<kind>interface|type|class|enum)\s+(?P<name>\w+)",
    re.MULTILINE,
)
_TS_CONST_RE = re.compile(
    r"^(?:export\s+)?const\s+(?P<name>[A-Z][A-Z0-9_]*)\s*(?::\s*[^=\n]+)?=\s*(?P<value>[^;\n]+);?[ \t]*$",
    re.MULTILINE,
)

_PY_FROM_PAREN_RE = re.compile(r"^from\s+(?P<src>[\w.]+)\s+import\s+\((?P<names>[^)]*)\)[ \t]*$", re.MULTILINE)
_PY_FROM_RE = re.compile(r"^from\s+(?P<src>[\w.]+)\s+import\s+(?P<names>[^\n(]+?)[ \t]*$", re.MULTILINE)
_PY_IMPORT_RE = re.compile(r"^import\s+(?P<mods>[\w.]+(?:\s+as\s+\w+)?(?:\s*,\s*[\w.]+(?:\s+as\s+\w+)?)*)[ \t]*$", re.MULTILINE)
_PY_CLASS_RE = re.compile(r"^class\s+(?P<name>\w+)", re.MULTILINE)
_PY_CONST_RE = re.compile(
    r"^(?P<name>[A-Z][A-Z0-9_]*)\s*(?::\s*[^=\n]+)?=\s*(?P<value>[^\n]+?)[ \t]*$",
    re.MULTILINE,
)


def _split_names(raw: str) -> tuple[str, ...]:
    names = []
    for part in raw.replace("\n", " ").split(","):
        part = part.strip()
        if part:
            names.append(re.sub(r"\s+", " ", part))
    return tuple(names)


_CONTINUATION_ENDINGS = ("=", "|", "&", ",", "<", "(", "extends", "implements")


def _brace_block_end(content: str, start: int) -> int:
    """End offset of the declaration starting at `start`.

    Brace blocks end at the matching `}`; brace-less declarations
    (`type A = B | C;`) end at `;` or at a line that does not continue.
    """
    depth = 0
    i = start
    n = len(content)
    while i < n:
        ch = content[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth <= 0:
                end = i + 1
                if end < n and content[end] == ";":
                    end += 1
                return end
        elif depth == 0 and ch == ";":
            return i + 1
        elif depth == 0 and ch == "\n":
            head = content[start:i].rstrip()
            ahead = content[i:].lstrip()
            if not head.endswith(_CONTINUATION_ENDINGS) and not ahead.startswith(("{", "|", "&")):
                return i
        i += 1
    return n


def _indent_block_end(content: str, start: int) -> int:
    """End offset of an indentation block whose header starts at `start`."""
    header_end = content.find("\n", start)
    if header_end == -1:
        return len(content)
    pos = header_end + 1
    end = header_end
    while pos < len(content):
        nl = content.find("\n", pos)
        line_end = len(content) if nl == -1 else nl
        line = content[pos:line_end]
        if line.strip() and not line[:1].isspace():
            break
        if line.strip():
            end = line_end
        pos = line_end + 1
    return end


@dataclass(frozen=True, slots=True)
class RegexStructureExtractor:
    """Regex-based extractor for TypeScript/JavaScript and Python files."""

    def extract(self, file: FileContext) -> FileStructure:
        if file.lang == "python":
            return self._python(file.content)
        if file.lang in ("typescript", "javascript"):
            return self._typescript(file.content)
        return FileStructure()

    def _typescript(self, content: str) -> FileStructure:
        imports: list[ImportInfo] = []
        for m in _TS_NAMED_IMPORT_RE.finditer(content):
            imports.append(ImportInfo(m.group("src"), _split_names(m.group("names")), m.group(0).strip(), m.span()))
        for m in _TS_DEFAULT_IMPORT_RE.finditer(content):
            names = (m.group("default"), *_split_names(m.group("names") or ""))
            imports.append(ImportInfo(m.group("src"), names, m.group(0).strip(), m.span()))
        for m in _TS_SIDE_EFFECT_IMPORT_RE.finditer(content):
            imports.append(ImportInfo(m.group("src"), (), m.group(0).strip(), m.span()))
        imports.sort(key=lambda imp: imp.span)

        declarations = []
        for m in _TS_DECL_RE.finditer(content):
            end = _brace_block_end(content, m.end())
            declarations.append(Declaration(m.group("name"), m.group("kind"), content[m.start() : end], (m.start(), end)))

        constants = [
            Constant(m.group("name"), m.group("value").strip(), m.span()) for m in _TS_CONST_RE.finditer(content)
        ]
        return FileStructure(imports=imports, declarations=declarations, constants=constants)

    def _python(self, content: str) -> FileStructure:
        imports: list[ImportInfo] = []
        for m in _PY_FROM_PAREN_RE.finditer(content):
            imports.append(ImportInfo(m.group("src"), _split_names(m.group("names")), m.group(0).strip(), m.span()))
        for m in _PY_FROM_RE.finditer(content):
            imports.append(ImportInfo(m.group("src"), _split_names(m.group("names")), m.group(0).strip(), m.span()))
        for m in _PY_IMPORT_RE.finditer(content):
            mods = _split_names(m.group("mods"))
            for mod in mods:
                imports.append(ImportInfo(mod.split(" as ")[0], (mod,), m.group(0).strip(), m.span()))
        imports.sort(key=lambda imp: imp.span)

        declarations = []
        for m in _PY_CLASS_RE.finditer(content):
            end = _indent_block_end(content, m.start())
            declarations.append(Declaration(m.group("name"), "class", content[m.start() : end], (m.start(), end)))

        constants = [
            Constant(m.group("name"), m.group("value").strip(), m.span()) for m in _PY_CONST_RE.finditer(content)
        ]
        return FileStructure(imports=imports, declarations=declarations, constants=constants)


DEFAULT_EXTRACTOR: StructureExtractor = RegexStructureExtractor()


@dataclass(frozen=True, slots=True)
class SharedElements:
    """Elements that appear in at least two files."""

    imports: dict[str, list[str]]  # source -> distinct statements
    import_names: dict[str, tuple[str, ...]]  # source -> union of imported names
    types: list[str]  # declarations with identical text in >= 2 files
    constants: dict[str, str]  # name -> value, same value in >= 2 files

    @property
    def item_count(self) -> int:
        names = sum(max(len(v), 1) for v in self.import_names.values())
        return names + len(self.types) + len(self.constants)

    def is_empty(self) -> bool:
        return not (self.imports or self.types or self.constants)


def _structures(files: Sequence[FileContext], extractor: StructureExtractor) -> list[FileStructure]:
    return [extractor.extract(f) for f in files]


def _normalize_ws(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def extract_shared_elements(
    files: Sequence[FileContext],
    extractor: StructureExtractor | None = None,
    *,
    structures: Sequence[FileStructure] | None = None,
) -> SharedElements:
    """Find imports (by source), types and constants shared by >= 2 files."""
    if structures is None:
        structures = _structures(files, extractor or DEFAULT_EXTRACTOR)

    source_files: dict[str, set[int]] = {}
    statements: dict[str, list[str]] = {}
    names: dict[str, list[str]] = {}
    type_files: dict[str, set[int]] = {}
    type_names: dict[str, str] = {}
    const_files: dict[tuple[str, str], set[int]] = {}

    for idx, st in enumerate(structures):
        for imp in st.imports:
            source_files.setdefault(imp.source, set()).add(idx)
            stmts = statements.setdefault(imp.source, [])
            if _normalize_ws(imp.statement) not in (_normalize_ws(s) for s in stmts):
                stmts.append(imp.statement)
            bucket = names.setdefault(imp.source, [])
            bucket.extend(n for n in imp.names if n not in bucket)
        for decl in st.declarations:
            key = _normalize_ws(decl.text)
            type_files.setdefault(key, set()).add(idx)
            type_names.setdefault(key, decl.name)
        for const in st.constants:
            const_files.setdefault((const.name, const.value), set()).add(idx)

    shared_sources = [src for src, idxs in source_files.items() if len(idxs) >= 2]
    return SharedElements(
        imports={src: statements[src] for src in shared_sources},
        import_names={src: tuple(names[src]) for src in shared_sources},
        types=[type_names[key] for key, idxs in type_files.items() if len(idxs) >= 2],
        constants={name: value for (name, value), idxs in const_files.items() if len(idxs) >= 2},
    )


def _cut_spans(content: str, spans: list[tuple[int, int]], replacements: dict[tuple[int, int], str] | None = None) -> str:
    """Remove (or replace) non-overlapping spans from content."""
    replacements = replacements or {}
    out: list[str] = []
    pos = 0
    for start, end in sorted(set(spans)):
        if start < pos:
            continue
        out.append(content[pos:start])
        out.append(replacements.get((start, end), ""))
        pos = end
    out.append(content[pos:])
    text = "".join(out)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip("\n")


def remove_shared_imports(
    file: FileContext,
    shared: SharedElements,
    structure: FileStructure | None = None,
) -> str:
    """Return the file content without imports whose source is shared."""
    st = structure or DEFAULT_EXTRACTOR.extract(file)
    spans = [imp.span for imp in st.imports if imp.source in shared.imports]
    return _cut_spans(file.content, spans)


def _dedupe_body(
    file: FileContext,
    structure: FileStructure,
    shared: SharedElements,
    seen_types: dict[str, str],
) -> str:
    """Drop shared imports, shared constants and already-rendered shared types."""
    comment = "#" if file.lang == "python" else "//"
    spans = [imp.span for imp in structure.imports if imp.source in shared.imports]
    spans.extend(c.span for c in structure.constants if shared.constants.get(c.name) == c.value)
    replacements: dict[tuple[int, int], str] = {}
    shared_types = set(shared.types)
    for decl in structure.declarations:
        if decl.name not in shared_types:
            continue
        key = _normalize_ws(decl.text)
        first = seen_types.get(key)
        if first is None:
            seen_types[key] = file.path
            continue
        spans.append(decl.span)
        replacements[decl.span] = f"{comment} {decl.kind} {decl.name}: see {first}"
    return _cut_spans(file.content, spans, replacements)


def _shared_header(shared: SharedElements) -> list[str]:
    out: list[str] = []
    if shared.imports:
        out.append("=== shared imports ===")
        for stmts in shared.imports.values():
            out.extend(stmts)
    if shared.constants:
        out.append("=== shared constants ===")
        out.extend(f"{name} = {value}" for name, value in shared.constants.items())
    if shared.types:
        out.append(f"=== shared types: {', '.join(shared.types)} ===")
    return out


_TS_SIG_RE = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(?:declare\s+)?(?:abstract\s+)?(?:async\s+)?"
    r"(?:import\b|function\b|class\b|interface\b|type\b|enum\b|const\b|let\b|var\b|"
    r"(?:public|private|protected|static|readonly|get|set|constructor)\b|[\w$]+\s*[(<])"
)
_TS_TYPE_BLOCK_RE = re.compile(r"^\s*(?:export\s+)?(?:declare\s+)?(?:interface|enum|type)\b")
_TS_CLASS_RE = re.compile(r"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\b")
_STRING_RE = re.compile(r"'(?:\\.|[^'\\])*'|\"(?:\\.|[^\"\\])*\"|`(?:\\.|[^`\\])*`")


def _brace_delta(line: str) -> tuple[int, int]:
    code = _STRING_RE.sub("", line.split("//", 1)[0])
    return code.count("{"), code.count("}")


def _skeleton_braces(content: str) -> str:
    out: list[str] = []
    stack: list[str] = []  # block kinds: class | type | other
    for line in content.splitlines():
        s = line.strip()
        opens, closes = _brace_delta(line)
        visible = all(kind in ("class", "type") for kind in stack)

        if visible:
            if stack and stack[-1] == "type":
                out.append(line)
            elif s.startswith("}") or _TS_SIG_RE.match(line):
                if opens > closes and not (_TS_CLASS_RE.match(line) or _TS_TYPE_BLOCK_RE.match(line)):
                    out.append(line[: line.index("{") + 1] + " ... }" if "{" in line else line)
                else:
                    out.append(line)
            elif not s and out and out[-1].strip():
                out.append("")

        if opens > closes:
            if _TS_CLASS_RE.match(line) and visible:
                kind = "class"
            elif _TS_TYPE_BLOCK_RE.match(line) and visible:
                kind = "type"
            else:
                kind = "other"
            stack.extend([kind] * (opens - closes))
        elif closes > opens:
            for _ in range(closes - opens):
                if stack:
                    stack.pop()
    return "\n".join(out).strip("\n")


_PY_SIG_RE = re.compile(r"^\s*(?:async\s+def|def|class)\s")
_PY_KEEP_RE = re.compile(r"^\s*(?:@|import\s|from\s+\S+\s+import\s)")
_PY_TOP_ASSIGN_RE = re.compile(r"^[A-Za-z_]\w*\s*(?::[^=]+)?=")


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _skeleton_python(content: str) -> str:
    out: list[str] = []
    skip_deeper_than: int | None = None
    in_signature = False
    sig_is_class = False
    sig_indent = 0
    for line in content.splitlines():
        s = line.strip()
        if in_signature:
            out.append(line)
            if s.endswith(":"):
                in_signature = False
                if not sig_is_class:
                    out.append(" " * (sig_indent + 4) + "...")
                    skip_deeper_than = sig_indent
            continue
        if not s:
            continue
        ind = _indent(line)
        if skip_deeper_than is not None:
            if ind > skip_deeper_than:
                continue
            skip_deeper_than = None

        if _PY_SIG_RE.match(line):
            out.append(line)
            is_class = s.startswith("class")
            if not s.endswith(":"):
                in_signature = True
                sig_is_class = is_class
                sig_indent = ind
            elif not is_class:
                out.append(" " * (ind + 4) + "...")
                skip_deeper_than = ind
        elif _PY_KEEP_RE.match(line) or (ind == 0 and _PY_TOP_ASSIGN_RE.match(line)):
            out.append(line)
    return "\n".join(out)


def extract_skeleton(file: FileContext) -> str:
    """Signatures and declarations only; function bodies elided."""
    if file.lang == "python":
        return _skeleton_python(file.content)
    if file.lang in ("typescript", "javascript"):
        return _skeleton_braces(file.content)
    return file.content


def _module_keys(path: str) -> set[str]:
    norm = posixpath.normpath(path.replace("\\", "/")).lstrip("./")
    stem = posixpath.splitext(norm)[0]
    keys = {stem}
    for suffix in ("/index", "/__init__"):
        if stem.endswith(suffix):
            keys.add(stem[: -len(suffix)])
    return keys


def _resolve_import(source: str, importer: FileContext, keys: dict[str, str]) -> str | None:
    base = posixpath.dirname(importer.path.replace("\\", "/"))
    if importer.lang == "python":
        dots = len(source) - len(source.lstrip("."))
        rest = source[dots:].replace(".", "/")
        if dots:
            for _ in range(dots - 1):
                base = posixpath.dirname(base)
            candidate = posixpath.join(base, rest) if rest else base
        else:
            candidate = rest
    elif source.startswith("."):
        candidate = posixpath.join(base, source)
    else:
        return None
    candidate = posixpath.normpath(candidate).lstrip("./")
    hit = keys.get(candidate)
    if hit is not None or importer.lang != "python":
        return hit
    # absolute python imports may be rooted above the supplied paths
    for key, path in keys.items():
        if key.endswith("/" + candidate):
            return path
    return None


def build_dependency_graph(
    files: Sequence[FileContext],
    structures: Sequence[FileStructure] | None = None,
) -> dict[str, list[str]]:
    """Map each file path to the in-set files it imports (file order kept)."""
    if structures is None:
        structures = _structures(files, DEFAULT_EXTRACTOR)
    keys: dict[str, str] = {}
    for f in files:
        for key in _module_keys(f.path):
            keys.setdefault(key, f.path)

    graph: dict[str, list[str]] = {}
    for f, st in zip(files, structures):
        deps: list[str] = []
        for imp in st.imports:
            target = _resolve_import(imp.source, f, keys)
            if target and target != f.path and target not in deps:
                deps.append(target)
        graph[f.path] = deps
    return graph


@dataclass(frozen=True, slots=True)
class Chunk:
    files: list[str]
    tokens: int


def create_chunks(
    files: Sequence[FileContext],
    max_tokens_per_chunk: int,
    *,
    graph: dict[str, list[str]] | None = None,
    counter: TokenCounter | None = None,
) -> list[Chunk]:
    """Group dependency-connected files breadth-first under a token cap.

    A file larger than the cap gets a chunk of its own.
    """
    if graph is None:
        graph = build_dependency_graph(files)
    tokens = {f.path: count_tokens(f.content, counter) for f in files}
    neighbours: dict[str, list[str]] = {f.path: list(graph.get(f.path, [])) for f in files}
    for src, deps in graph.items():
        for dep in deps:
            if dep in neighbours and src not in neighbours[dep]:
                neighbours[dep].append(src)

    assigned: set[str] = set()
    chunks: list[Chunk] = []
    for f in files:
        if f.path in assigned:
            continue
        members: list[str] = []
        used = 0
        queue = deque([f.path])
        queued = {f.path}
        while queue:
            path = queue.popleft()
            if path in assigned:
                continue
            cost = tokens[path]
            if members and used + cost > max_tokens_per_chunk:
                continue
            members.append(path)
            assigned.add(path)
            used += cost
            for nxt in neighbours[path]:
                if nxt not in assigned and nxt not in queued:
                    queue.append(nxt)
                    queued.add(nxt)
        chunks.append(Chunk(files=members, tokens=used))
    return chunks


@dataclass(frozen=True, slots=True)
class MultiFileOptions:
    strategy: MultiFileStrategy = MultiFileStrategy.DEDUPLICATE
    max_tokens: int = DEFAULT_MAX_TOKENS
    entry_points: tuple[str, ...] = ()
    dependency_depth: int = 1
    preserve_patterns: tuple[str, ...] = ()  # fnmatch globs rendered in full
    counter: TokenCounter | None = None
    extractor: StructureExtractor | None = None

    def __post_init__(self) -> None:
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be >= 1")
        if self.dependency_depth < 0:
            raise ValueError("dependency_depth must be >= 0")


@dataclass(frozen=True, slots=True)
class MultiFileStats:
    original_tokens: int
    compressed_tokens: int
    files_processed: int
    deduplicated_items: int
    reduction_percent: float


@dataclass(frozen=True, slots=True)
class MultiFileResult:
    compressed: str
    stats: MultiFileStats
    shared: SharedElements
    chunks: list[Chunk] = field(default_factory=list)


def _matches_any(path: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch.fnmatch(path, p) or fnmatch.fnmatch(posixpath.basename(path), p) for p in patterns)


def _full_render_set(files: Sequence[FileContext], graph: dict[str, list[str]], options: MultiFileOptions) -> set[str]:
    full = {f.path for f in files if _matches_any(f.path, options.preserve_patterns)}
    frontier = [f.path for f in files if _matches_any(f.path, options.entry_points)]
    depth = 0
    seen = set(frontier)
    while frontier:
        full.update(frontier)
        if depth >= options.dependency_depth:
            break
        nxt = []
        for path in frontier:
            for dep in graph.get(path, []):
                if dep not in seen:
                    seen.add(dep)
                    nxt.append(dep)
        frontier = nxt
        depth += 1
    return full


def compress_multi_file(files: Sequence[FileContext], options: MultiFileOptions | None = None) -> MultiFileResult:
    """Compress a set of files with the configured cross-file strategy."""
    options = options or MultiFileOptions()
    extractor = options.extractor or DEFAULT_EXTRACTOR
    counter = options.counter
    structures = _structures(files, extractor)
    shared = extract_shared_elements(files, structures=structures)
    original_tokens = sum(count_tokens(f.content, counter) for f in files)

    out: list[str] = _shared_header(shared)
    chunks: list[Chunk] = []
    seen_types: dict[str, str] = {}

    if options.strategy is MultiFileStrategy.SKELETON:
        graph = build_dependency_graph(files, structures)
        full = _full_render_set(files, graph, options)
        for f, st in zip(files, structures):
            if f.path in full:
                out.append(f"=== {f.path} (full) ===")
                out.append(_dedupe_body(f, st, shared, seen_types))
            else:
                out.append(f"=== {f.path} (skeleton) ===")
                stripped = FileContext(f.path, remove_shared_imports(f, shared, st), f.language)
                out.append(extract_skeleton(stripped))
    elif options.strategy is MultiFileStrategy.SMART_CHUNK:
        graph = build_dependency_graph(files, structures)
        chunks = create_chunks(files, max(options.max_tokens // 3, 1), graph=graph, counter=counter)
        by_path = {f.path: (f, st) for f, st in zip(files, structures)}
        for i, chunk in enumerate(chunks[:MAX_RENDERED_CHUNKS], start=1):
            out.append(f"=== chunk {i}/{len(chunks)} ({len(chunk.files)} files, ~{chunk.tokens} tokens) ===")
            for path in chunk.files:
                f, st = by_path[path]
                out.append(f"--- {path} ---")
                out.append(_dedupe_body(f, st, shared, seen_types))
        rest = chunks[MAX_RENDERED_CHUNKS:]
        if rest:
            pending = ", ".join(p for c in rest for p in c.files)
            out.append(f"[... {len(rest)} more chunks: {pending} ...]")
    else:
        for f, st in zip(files, structures):
            out.append(f"=== {f.path} ===")
            out.append(_dedupe_body(f, st, shared, seen_types))

    compressed = "\n".join(out)
    compressed_tokens = count_tokens(compressed, counter)
    logger.debug(
        "Multi-file %s: %s files, %s shared items", options.strategy.value, len(files), shared.item_count
    )
    return MultiFileResult(
        compressed=compressed,
        stats=MultiFileStats(
            original_tokens=original_tokens,
            compressed_tokens=compressed_tokens,
            files_processed=len(files),
            deduplicated_items=shared.item_count,
            reduction_percent=reduction_percent(original_tokens, compressed_tokens),
        ),
        shared=shared,
        chunks=chunks,
    )
