"""Fixed recognition tables consumed by the extraction core."""

from __future__ import annotations

STYLE_ATTRIBUTES: tuple[str, ...] = ("className", "style", "classNames")

# Markup ancestors whose label ends with this token are non-visual scope wrappers.
WRAPPER_SUFFIX = "Provider"

LABEL_ATTRIBUTES: tuple[str, ...] = ("id", "name")

GROUP_KEY_DELIMITER = ":"

STYLE_FUNCTION_SUFFIX = "Styles"

ACCESSOR_OBJECT = "styling"

STYLES_LOCAL = "styles"

FRAMEWORK_MODULE = "react"

CONTEXT_ACCESSORS = frozenset({"useContext"})

CONTEXT_FACTORIES = frozenset({"createContext"})

VARIANT_HELPERS = frozenset({"cva"})

VARIANT_HELPER_MODULE = "class-variance-authority"

VARIANT_TYPE_UTILITY = "VariantProps"

# Option keys of a variant helper call that never name a variant.
VARIANT_PASSTHROUGH_KEYS = frozenset({"className", "class"})

FALLBACK_TYPE = "any"

# Depth of initializer indirection followed when hoisting module variables.
HOIST_DEPTH = 1

FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
    }
)

RESERVED_WORDS = frozenset(
    {
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "debugger",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "function",
        "if",
        "import",
        "in",
        "instanceof",
        "new",
        "null",
        "return",
        "super",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "typeof",
        "var",
        "void",
        "while",
        "with",
        "yield",
    }
)
