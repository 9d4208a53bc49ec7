"""XML template parser."""
from typing import Optional

from lxml import etree

from messagelab.core.models import Attribute, DataFormat, Node, ParseOutcome
from messagelab.core.relations import detect_relations
from messagelab.core.tree import flatten_xml_fields, normalize_loops
from messagelab.exceptions import XmlParseError
from messagelab.parsers.base import TemplateParser, clean_text

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


def _qualified_name(name: str, nsmap: dict) -> str:
    """Turn a Clark-notation ``{uri}local`` name back into ``prefix:local``."""
    qname = etree.QName(name)
    if qname.namespace is None:
        return qname.localname
    if qname.namespace == XML_NAMESPACE:
        return f"xml:{qname.localname}"
    for prefix, uri in nsmap.items():
        if uri == qname.namespace and prefix is not None:
            return f"{prefix}:{qname.localname}"
    return qname.localname


def _namespace_declarations(element, parent_nsmap: dict) -> list[Attribute]:
    declarations = []
    for prefix, uri in element.nsmap.items():
        if parent_nsmap.get(prefix) == uri:
            continue
        name = f"xmlns:{prefix}" if prefix else "xmlns"
        declarations.append(Attribute(name=name, value=uri))
    return declarations


def build_node(element, parent_nsmap: Optional[dict] = None) -> Node:
    """Build a generic node from an lxml element, recursively.

    Comments and processing instructions are skipped. Leaf text is kept
    untrimmed; it is only trimmed when fields are flattened.
    """
    nsmap = element.nsmap
    attrs = _namespace_declarations(element, parent_nsmap or {})
    for name, value in element.attrib.items():
        attrs.append(Attribute(name=_qualified_name(name, nsmap), value=value))

    elements = [child for child in element if isinstance(child.tag, str)]
    children = tuple(build_node(child, nsmap) for child in elements)

    text = None
    if not elements:
        text = (element.text or "") + "".join(child.tail or "" for child in element)

    local = etree.QName(element).localname
    tag = f"{element.prefix}:{local}" if element.prefix else local
    return Node(tag=tag, attrs=tuple(attrs), children=children, text=text)


class XmlTemplateParser(TemplateParser):
    """Parses XML documents; repeated siblings become loops."""

    format = DataFormat.XML

    def __init__(self):
        super().__init__()
        self._parser = etree.XMLParser(
            resolve_entities=False,
            no_network=True,
            remove_comments=False,
            encoding="utf-8",
        )

    def _parse(self, text: str) -> ParseOutcome:
        source = clean_text(text)
        if not source.strip():
            raise XmlParseError("Document is empty")

        try:
            element = etree.fromstring(source.encode("utf-8"), parser=self._parser)
        except etree.XMLSyntaxError as e:
            line, column = e.position if e.position else (None, None)
            raise XmlParseError(e.msg or str(e), line=line, column=column, original_error=e) from e

        root, loops = normalize_loops(build_node(element))
        fields = flatten_xml_fields(root)
        return ParseOutcome.success(root, fields, loops, detect_relations(fields))
