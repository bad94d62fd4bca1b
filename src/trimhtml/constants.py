"""Tag and attribute tables shared by the filtering passes."""

from __future__ import annotations

# Always preserved, never counted against a budget, never removed or unwrapped.
STRUCTURAL_TAGS: frozenset[str] = frozenset({"html", "head", "body"})

# Attributes whose values are fetched or navigated to.
URL_ATTRIBUTES: frozenset[str] = frozenset({
    "href",
    "src",
    "xlink:href",
    "action",
    "formaction",
    "poster",
    "srcset",
    "data",
    "codebase",
    "archive",
    "cite",
    "longdesc",
    "usemap",
    "background",
    "profile",
    "icon",
    "manifest",
})

# Conservative defaults granted by `allow_common_attributes`.
COMMON_GLOBAL_ATTRIBUTES: tuple[str, ...] = ("class", "id")
COMMON_ATTRIBUTES: dict[str, tuple[str, ...]] = {
    "a": ("href", "title", "target", "rel"),
    "img": ("src", "alt", "title", "width", "height"),
    "html": ("lang",),
}

# Wildcard style selector used for inline styles on any tag.
WILDCARD_SELECTOR = "*"

# Schemes the defense-in-depth pass lets through on URL attributes.
SAFE_PROTOCOLS: tuple[str, ...] = (
    "http",
    "https",
    "mailto",
    "tel",
    "callto",
    "sms",
    "cid",
    "xmpp",
    "ftp",
    "ftps",
    "matrix",
)

# HTML5 void elements (no closing tag)
VOID_ELEMENTS: frozenset[str] = frozenset({
    "area", "base", "basefont", "bgsound", "br", "col", "embed", "frame", "hr",
    "img", "input", "keygen", "link", "meta", "param", "source", "track", "wbr",
})

# Elements whose text children are serialized without escaping.
RAWTEXT_ELEMENTS: frozenset[str] = frozenset({
    "style", "script", "xmp", "iframe", "noembed", "noframes", "plaintext",
})

NAMESPACE_URIS: dict[str, str | None] = {
    "http://www.w3.org/1999/xhtml": None,
    "http://www.w3.org/2000/svg": "svg",
    "http://www.w3.org/1998/Math/MathML": "math",
}

# Elements that stay open to the end of the document once parsed. Their
# content is always kept as text.
UNCLOSABLE_ELEMENTS: frozenset[str] = frozenset({"plaintext"})

# Foreign element and attribute names the HTML parser gives mixed case.
SVG_CASE_SENSITIVE_ELEMENTS: dict[str, str] = {
    "altglyph": "altGlyph",
    "altglyphdef": "altGlyphDef",
    "altglyphitem": "altGlyphItem",
    "animatecolor": "animateColor",
    "animatemotion": "animateMotion",
    "animatetransform": "animateTransform",
    "clippath": "clipPath",
    "feblend": "feBlend",
    "fecolormatrix": "feColorMatrix",
    "fecomponenttransfer": "feComponentTransfer",
    "fecomposite": "feComposite",
    "feconvolvematrix": "feConvolveMatrix",
    "fediffuselighting": "feDiffuseLighting",
    "fedisplacementmap": "feDisplacementMap",
    "fedistantlight": "feDistantLight",
    "fedropshadow": "feDropShadow",
    "feflood": "feFlood",
    "fefunca": "feFuncA",
    "fefuncb": "feFuncB",
    "fefuncg": "feFuncG",
    "fefuncr": "feFuncR",
    "fegaussianblur": "feGaussianBlur",
    "feimage": "feImage",
    "femerge": "feMerge",
    "femergenode": "feMergeNode",
    "femorphology": "feMorphology",
    "feoffset": "feOffset",
    "fepointlight": "fePointLight",
    "fespecularlighting": "feSpecularLighting",
    "fespotlight": "feSpotLight",
    "fetile": "feTile",
    "feturbulence": "feTurbulence",
    "foreignobject": "foreignObject",
    "glyphref": "glyphRef",
    "lineargradient": "linearGradient",
    "radialgradient": "radialGradient",
    "textpath": "textPath",
}

FOREIGN_CASE_SENSITIVE_ATTRIBUTES: dict[str, str] = {
    "attributename": "attributeName",
    "attributetype": "attributeType",
    "basefrequency": "baseFrequency",
    "baseprofile": "baseProfile",
    "calcmode": "calcMode",
    "clippathunits": "clipPathUnits",
    "definitionurl": "definitionURL",
    "diffuseconstant": "diffuseConstant",
    "edgemode": "edgeMode",
    "filterunits": "filterUnits",
    "glyphref": "glyphRef",
    "gradienttransform": "gradientTransform",
    "gradientunits": "gradientUnits",
    "kernelmatrix": "kernelMatrix",
    "kernelunitlength": "kernelUnitLength",
    "keypoints": "keyPoints",
    "keysplines": "keySplines",
    "keytimes": "keyTimes",
    "lengthadjust": "lengthAdjust",
    "limitingconeangle": "limitingConeAngle",
    "markerheight": "markerHeight",
    "markerunits": "markerUnits",
    "markerwidth": "markerWidth",
    "maskcontentunits": "maskContentUnits",
    "maskunits": "maskUnits",
    "numoctaves": "numOctaves",
    "pathlength": "pathLength",
    "patterncontentunits": "patternContentUnits",
    "patterntransform": "patternTransform",
    "patternunits": "patternUnits",
    "pointsatx": "pointsAtX",
    "pointsaty": "pointsAtY",
    "pointsatz": "pointsAtZ",
    "preservealpha": "preserveAlpha",
    "preserveaspectratio": "preserveAspectRatio",
    "primitiveunits": "primitiveUnits",
    "refx": "refX",
    "refy": "refY",
    "repeatcount": "repeatCount",
    "repeatdur": "repeatDur",
    "requiredextensions": "requiredExtensions",
    "requiredfeatures": "requiredFeatures",
    "specularconstant": "specularConstant",
    "specularexponent": "specularExponent",
    "spreadmethod": "spreadMethod",
    "startoffset": "startOffset",
    "stddeviation": "stdDeviation",
    "stitchtiles": "stitchTiles",
    "surfacescale": "surfaceScale",
    "systemlanguage": "systemLanguage",
    "tablevalues": "tableValues",
    "targetx": "targetX",
    "targety": "targetY",
    "textlength": "textLength",
    "viewbox": "viewBox",
    "viewtarget": "viewTarget",
    "xchannelselector": "xChannelSelector",
    "ychannelselector": "yChannelSelector",
    "zoomandpan": "zoomAndPan",
}

# Prefixes written back onto namespaced attribute names after bleach, which
# serializes them by local name only.
ATTRIBUTE_NAMESPACE_PREFIXES: dict[str, str] = {
    "http://www.w3.org/1999/xlink": "xlink",
    "http://www.w3.org/XML/1998/namespace": "xml",
    "http://www.w3.org/2000/xmlns/": "xmlns",
}
