"""XMP metadata packet declaring PDF/A-3B and the Factur-X extension schema."""

from datetime import datetime
from xml.etree import ElementTree as ET

# XMP namespaces
NS = {
    "x": "adobe:ns:meta/",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "dc": "http://purl.org/dc/elements/1.1/",
    "xmp": "http://ns.adobe.com/xap/1.0/",
    "pdf": "http://ns.adobe.com/pdf/1.3/",
    "pdfaid": "http://www.aiim.org/pdfa/ns/id/",
    "pdfaExtension": "http://www.aiim.org/pdfa/ns/extension/",
    "pdfaSchema": "http://www.aiim.org/pdfa/ns/schema#",
    "pdfaProperty": "http://www.aiim.org/pdfa/ns/property#",
    "fx": "urn:factur-x:pdfa:CrossIndustryDocument:invoice:1p0#",
    "xml": "http://www.w3.org/XML/1998/namespace",
}

# Register namespaces for clean output
for prefix, uri in NS.items():
    if prefix != "xml":  # xml namespace is implicit
        ET.register_namespace(prefix, uri)

# Factur-X conformance level per profile
CONFORMANCE_LEVELS = {
    "BASIC": "BASIC",
    "EN16931": "EN 16931",
    "EXTENDED": "EXTENDED",
}

FX_PROPERTIES = [
    ("DocumentFileName", "The name of the embedded XML document"),
    ("DocumentType", "The type of the hybrid document in capital letters, e.g. INVOICE"),
    ("Version", "The actual version of the standard applying to the embedded XML"),
    ("ConformanceLevel", "The conformance level of the embedded XML document"),
]


def _tag(ns: str, name: str) -> str:
    """Create namespaced tag."""
    return f"{{{NS[ns]}}}{name}"


def _add_lang_alt(parent: ET.Element, dc_name: str, value: str) -> None:
    """Add Dublin Core element as rdf:Alt with xml:lang."""
    elem = ET.SubElement(parent, _tag("dc", dc_name))
    alt = ET.SubElement(elem, _tag("rdf", "Alt"))
    li = ET.SubElement(alt, _tag("rdf", "li"))
    li.set(_tag("xml", "lang"), "x-default")
    li.text = value


def _description(rdf: ET.Element) -> ET.Element:
    desc = ET.SubElement(rdf, _tag("rdf", "Description"))
    desc.set(_tag("rdf", "about"), "")
    return desc


def _add_extension_schema(rdf: ET.Element) -> None:
    """Describe the fx: schema so PDF/A validators accept its properties."""
    desc = _description(rdf)
    schemas = ET.SubElement(desc, _tag("pdfaExtension", "schemas"))
    bag = ET.SubElement(schemas, _tag("rdf", "Bag"))
    schema = ET.SubElement(bag, _tag("rdf", "li"))
    schema.set(_tag("rdf", "parseType"), "Resource")
    ET.SubElement(schema, _tag("pdfaSchema", "schema")).text = "Factur-X PDFA Extension Schema"
    ET.SubElement(schema, _tag("pdfaSchema", "namespaceURI")).text = NS["fx"]
    ET.SubElement(schema, _tag("pdfaSchema", "prefix")).text = "fx"

    properties = ET.SubElement(schema, _tag("pdfaSchema", "property"))
    seq = ET.SubElement(properties, _tag("rdf", "Seq"))
    for name, description in FX_PROPERTIES:
        li = ET.SubElement(seq, _tag("rdf", "li"))
        li.set(_tag("rdf", "parseType"), "Resource")
        ET.SubElement(li, _tag("pdfaProperty", "name")).text = name
        ET.SubElement(li, _tag("pdfaProperty", "valueType")).text = "Text"
        ET.SubElement(li, _tag("pdfaProperty", "category")).text = "external"
        ET.SubElement(li, _tag("pdfaProperty", "description")).text = description


def build_xmp(
    title: str,
    creator: str,
    description: str,
    producer: str,
    creator_tool: str,
    document_file_name: str,
    profile: str = "EN16931",
    timestamp: datetime | None = None,
) -> str:
    """Build the XMP packet for a Factur-X / ZUGFeRD PDF/A-3B document."""
    conformance = CONFORMANCE_LEVELS.get(profile.upper())
    if conformance is None:
        raise ValueError(f"Unknown invoice profile: {profile}")
    stamp = (timestamp or datetime.now().astimezone()).isoformat(timespec="seconds")

    xmpmeta = ET.Element(_tag("x", "xmpmeta"))
    rdf = ET.SubElement(xmpmeta, _tag("rdf", "RDF"))

    # PDF/A identification
    desc = _description(rdf)
    ET.SubElement(desc, _tag("pdfaid", "part")).text = "3"
    ET.SubElement(desc, _tag("pdfaid", "conformance")).text = "B"

    # Dublin Core with rdf:Alt
    desc = _description(rdf)
    _add_lang_alt(desc, "title", title)
    _add_lang_alt(desc, "description", description)
    creator_elem = ET.SubElement(desc, _tag("dc", "creator"))
    seq = ET.SubElement(creator_elem, _tag("rdf", "Seq"))
    ET.SubElement(seq, _tag("rdf", "li")).text = creator

    # XMP basic and PDF schema
    desc = _description(rdf)
    ET.SubElement(desc, _tag("xmp", "CreatorTool")).text = creator_tool
    ET.SubElement(desc, _tag("xmp", "CreateDate")).text = stamp
    ET.SubElement(desc, _tag("xmp", "ModifyDate")).text = stamp
    ET.SubElement(desc, _tag("pdf", "Producer")).text = producer

    # Factur-X identification
    desc = _description(rdf)
    ET.SubElement(desc, _tag("fx", "DocumentType")).text = "INVOICE"
    ET.SubElement(desc, _tag("fx", "DocumentFileName")).text = document_file_name
    ET.SubElement(desc, _tag("fx", "Version")).text = "1.0"
    ET.SubElement(desc, _tag("fx", "ConformanceLevel")).text = conformance

    _add_extension_schema(rdf)

    # Serialize with xpacket wrapper
    xml_str = ET.tostring(xmpmeta, encoding="unicode")
    return (
        '<?xpacket begin="\ufeff" id="W5M0MpCehiHzreSzNTczkc9d"?>\n'
        f"{xml_str}\n"
        '<?xpacket end="w"?>\n'
    )
