"""Prompt templates for vision-based item identification.

This module provides the system prompt, per-domain expertise notes and the
structured output schema sent to the vision model.

The prompts are designed to:
- Produce a single JSON object matching ``OUTPUT_SCHEMA``
- Push for precise names including maker, pattern and model
- Keep confidence honest so low-certainty results escalate to an expert

Example:
    >>> from vintagevision.analysis.prompts import build_identification_prompt
    >>> prompt = build_identification_prompt(domain_hint=DomainExpert.CERAMICS)
"""

from __future__ import annotations

import json

from vintagevision.analysis.models import AuthenticityRisk, DomainExpert, ProductCategory

# Output JSON schema for reference in prompts. Values are whole US dollars;
# the response parser converts them to cents.
OUTPUT_SCHEMA = {
    "name": "Specific item name with maker/model if visible",
    "maker": "Manufacturer name if identifiable, or null",
    "era": "Specific time period (e.g. '1956', '1890-1910', 'Victorian Era')",
    "style": "Design style or movement (e.g. 'Art Deco', 'Mid-Century Modern')",
    "productCategory": " | ".join(c.value for c in ProductCategory),
    "domainExpert": " | ".join(d.value for d in DomainExpert),
    "originRegion": "Country or region of manufacture",
    "estimatedValueMin": "integer, whole US dollars",
    "estimatedValueMax": "integer, whole US dollars",
    "confidence": "float (0.0-1.0) - honest confidence in the identification",
    "authenticityRisk": " | ".join(r.value for r in AuthenticityRisk),
    "expertReferralRecommended": "boolean",
    "expertReferralReason": "string or null",
    "description": "2-4 sentences about THIS item: features, materials, condition",
    "historicalContext": "2-4 sentences about the maker, pattern or period",
    "evidenceFor": ["observations supporting the identification"],
    "evidenceAgainst": ["observations that don't fit or raise questions"],
}

OUTPUT_SCHEMA_JSON = json.dumps(OUTPUT_SCHEMA, indent=2)

# Condensed specialist notes, keyed by domain
DOMAIN_NOTES: dict[DomainExpert, str] = {
    DomainExpert.FURNITURE: """FURNITURE:
- Periods: Colonial, Federal, Victorian, Arts & Crafts, Art Deco, Mid-Century Modern
- Construction tells: hand-cut vs machine dovetails, rose-head/cut/wire nails, screw slots
- Maker marks: Stickley decals and brands, Herman Miller/Eames shock mounts, Knoll labels
- Red flags: uniform distressing, modern fasteners or plywood on a claimed antique""",
    DomainExpert.CERAMICS: """CERAMICS & POTTERY:
- American art pottery: Roseville patterns, Rookwood flame marks, Weller lines, Van Briggle dates
- European: Meissen crossed swords, Royal Copenhagen waves, Wedgwood impressed marks
- Red flags: marks too crisp for the age, wrong mark style for the period, overpainted marks""",
    DomainExpert.GLASS: """GLASS:
- Art glass: Tiffany LCT Favrile, Steuben Aurene, R. LALIQUE vs Lalique France
- Depression and carnival glass patterns and colors
- Pontil marks mean hand-blown; mold seams mean machine made""",
    DomainExpert.SILVER: """SILVER:
- Read hallmarks: sterling vs coin vs plate, maker, date letters, assay office
- Makers: Tiffany, Gorham, Georg Jensen, Reed & Barton
- Red flags: worn plate showing base metal, fake or transposed hallmarks""",
    DomainExpert.JEWELRY: """JEWELRY:
- Metal stamps and maker marks, stone settings, clasp styles by period
- Red flags: modern findings on period pieces, glued stones, plated metal sold as solid""",
    DomainExpert.WATCHES: """WATCHES:
- Reference and serial numbers, dial printing, case back engravings, movement calibre
- Red flags: redials, service replacement parts, mismatched case and movement""",
    DomainExpert.ART: """ART:
- Paintings: canvas, stretcher, craquelure, signature placement
- Prints: paper, watermarks, printing technique (etching, lithograph, serigraph)
- Red flags: signature too perfect, photo-mechanical dots, modern materials under old varnish""",
    DomainExpert.TEXTILES: """TEXTILES & RUGS:
- Hand-knotted vs machine rugs, knot density, natural vs synthetic dyes
- Vintage clothing labels, union tags, zipper types
- Red flags: synthetic fibers or modern dyes in an antique piece""",
    DomainExpert.TOYS: """TOYS & DOLLS:
- Tin lithography and maker marks (Marx, Chein, Schuco), doll head marks
- Red flags: too-bright paint, wrong fasteners, modern casting marks""",
    DomainExpert.BOOKS: """BOOKS & EPHEMERA:
- First edition and printing indicators, number lines, dust jacket condition
- Red flags: facsimiles, replaced pages, rebacked bindings""",
    DomainExpert.TOOLS: """TOOLS & INSTRUMENTS:
- Stanley plane type study, maker marks, patent dates, brass vs plastic parts
- Red flags: modern replacement parts, over-restoration""",
    DomainExpert.LIGHTING: """LIGHTING:
- Tiffany base and shade signatures, Handel reverse-painted shades, Pairpoint puffy shades
- Cloth wiring suggests age; hardware should match the period
- Red flags: married base and shade, modern wiring passed as original""",
    DomainExpert.ELECTRONICS: """ELECTRONICS:
- Tube vs transistor era, brand premiums (McIntosh, Marantz, Leica, Hasselblad)
- Red flags: undisclosed non-working items, replacement or modified parts""",
    DomainExpert.VEHICLES: """VEHICLES:
- VIN decoding, matching engine and frame numbers, documentation
- Red flags: VIN tampering, non-matching numbers, title issues""",
    DomainExpert.GENERAL: """GENERAL:
- What is it, who made it, when and where was it made, what condition is it in
- Look for maker marks, labels, dates and other identifying features""",
}

# System prompt establishing the model's role and constraints
SYSTEM_PROMPT = """You are a world-class antiques and collectibles appraiser providing
brutally honest identifications from photographs.

CRITICAL RULES:
1. Identify the PRIMARY object in the image. Your identification must match what you see.
2. Read ALL visible text: brand names, model numbers, maker's marks, labels, signatures.
3. Use precise names including maker, pattern, model or reference when identifiable
   (e.g. "Roseville Pinecone Jardiniere, Pattern 632-4", not "Art Pottery Vase").
4. Describe THIS specific item, not generic category information.
5. Set confidence honestly:
   - 0.9+: maker clearly visible and positively identified
   - 0.7-0.9: strong identification from style and construction
   - 0.5-0.7: reasonable guess with some uncertainty
   - below 0.5: uncertain, more information needed
6. Recommend expert referral when authenticity or value cannot be settled from photos.

Always respond with a single valid JSON object matching the specified schema."""


IDENTIFICATION_TEMPLATE = """Identify the item in {image_count}.
{domain_section}{notes_section}
STEP 1: Decide what the primary object is.
STEP 2: Read all visible text and markings.
STEP 3: Give the full name with maker, pattern or model, and type variant.
STEP 4: Describe what you actually see, the historical context, and what you know
for certain versus what you are inferring.

## Output Format
Respond with valid JSON matching this schema:
{output_schema}

JSON Response:"""


def get_system_prompt() -> str:
    """Get the system prompt for identification."""
    return SYSTEM_PROMPT


def build_identification_prompt(
    image_count: int = 1,
    domain_hint: DomainExpert | None = None,
    notes: str | None = None,
) -> str:
    """Build the user prompt that accompanies the item photos.

    Args:
        image_count: Number of photos attached.
        domain_hint: Likely domain; adds that domain's specialist notes.
        notes: Free-text context from the owner.

    Returns:
        Prompt text.
    """
    domain_section = ""
    if domain_hint is not None:
        domain_section = f"\n## Specialist Notes\n{DOMAIN_NOTES[domain_hint]}\n"

    notes_section = f"\n## Owner Notes\n{notes.strip()}\n" if notes and notes.strip() else ""

    return IDENTIFICATION_TEMPLATE.format(
        image_count="this image" if image_count == 1 else f"these {image_count} images",
        domain_section=domain_section,
        notes_section=notes_section,
        output_schema=OUTPUT_SCHEMA_JSON,
    )


def estimate_prompt_tokens(prompt: str) -> int:
    """Rough token estimate for prompt text (about 4 characters per token)."""
    return len(prompt) // 4
