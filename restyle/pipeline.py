"""Per-component extraction: analyze, generate, rewrite, prune, write."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from .analysis.attributes import AttributeAnalyzer
from .analysis.resolver import RootResolver, is_wrapper_label
from .analysis.scanner import attribute_value, iter_markup_elements, presentation_attributes, tag_name
from .analysis.symbols import Project
from .analysis.types import TypeContext, TypeResolver
from .config import RestyleConfig
from .errors import ElementExtractionError, ExtractionError
from .generation.builder import StyleFileBuilder
from .generation.generator import CodeGenerator
from .generation.pruner import prune_unused_imports
from .logging import get_logger, job_logger
from .models import ExtractionResult, ManipulationPass
from .storage import write_outputs
from .syntax import SourceTree

logger = get_logger("pipeline")


def extract_source(
    project: Project,
    tree: SourceTree,
    *,
    accessor_path: Path,
    output_path: Path,
    accessor_module: str,
    style: str = "",
    component: str = "",
    is_wrapper: Callable[[str], bool] = is_wrapper_label,
) -> ExtractionResult:
    """Extract presentation attributes of ``tree`` in place.

    Returns the rewritten source and the accessor module text. Elements that
    cannot be named or bound are skipped; a group collision aborts the file.
    """
    log = job_logger("pipeline", style, component or str(tree.path or "<source>"))
    builder = StyleFileBuilder()
    context = TypeContext(
        component=tree,
        accessor_path=Path(accessor_path),
        output_path=Path(output_path),
        hoisted=builder.hoisted_names,
    )
    types = TypeResolver(project, context)
    roots = RootResolver(tree, is_wrapper)
    analyzer = AttributeAnalyzer(project, tree, types, builder, accessor_module)

    skipped = 0
    for element in list(iter_markup_elements(tree)):
        attributes = [
            attribute for attribute in presentation_attributes(tree, element) if attribute_value(attribute) is not None
        ]
        if not attributes:
            continue
        try:
            location = roots.resolve(element)
            analysis = analyzer.analyze(element, location, attributes)
        except ElementExtractionError as exc:
            skipped += 1
            log.warning("Skipping <%s> in %s: %s", exc.element or tag_name(tree, element), tree.path, exc)
            continue
        analyzer.commit(analysis)

    if not builder.functions:
        log.debug("No presentation attributes extracted from %s", tree.path)
        return ExtractionResult(
            style=style,
            component=component,
            source=tree.source_text,
            accessor_source=None,
            output_path=Path(output_path),
            accessor_path=Path(accessor_path),
            skipped_elements=skipped,
        )

    queue = builder.manipulations
    queue.run(ManipulationPass.BEFORE_GENERATION)
    builder.discard_empty()

    generator = CodeGenerator(tree, builder, accessor_module)
    accessor_source = generator.render_module()
    exports = [
        declaration.statement or declaration.declarator
        for declaration in types.pending_exports.values()
        if (declaration.statement or declaration.declarator) is not None
    ]
    generator.queue_rewrites(exports)
    queue.run(ManipulationPass.AFTER_GENERATION)
    tree.commit()
    project.invalidate(tree)

    prune_unused_imports(tree)
    source = tree.commit()
    project.invalidate(tree)

    result = ExtractionResult(
        style=style,
        component=component,
        source=source,
        accessor_source=accessor_source,
        output_path=Path(output_path),
        accessor_path=Path(accessor_path),
        functions=len(builder.functions),
        groups=builder.group_count,
        skipped_elements=skipped,
    )
    log.info(
        "extracted %d group(s) into %d accessor(s)%s",
        result.groups,
        result.functions,
        f", skipped {skipped} element(s)" if skipped else "",
    )
    return result


def extract_component(
    config: RestyleConfig,
    style: str,
    component: str,
    project: Optional[Project] = None,
    *,
    write: bool = True,
) -> ExtractionResult:
    """Run the full pipeline for one (style, component) pair."""
    source_path = config.component_path(style, component)
    if not source_path.is_file():
        raise ExtractionError(f"Component source not found: {source_path}")
    project = project or Project(root=config.root, aliases=config.aliases)
    tree = project.parser.parse(source_path.read_bytes(), source_path.resolve())
    logger.debug("Extracting %s/%s from %s", style, component, source_path)

    result = extract_source(
        project,
        tree,
        accessor_path=config.accessor_path(style, component),
        output_path=config.output_path(style, component),
        accessor_module=config.accessor_module(style, component),
        style=style,
        component=component,
    )
    if write:
        outputs = {config.output_path(style, component): result.source}
        if result.accessor_source is not None:
            outputs[config.accessor_path(style, component)] = result.accessor_source
        write_outputs(outputs)
    return result


__all__ = ["extract_component", "extract_source"]
