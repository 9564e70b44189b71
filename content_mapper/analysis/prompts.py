"""Prompt construction for analysis, insight and refinement calls.

Optional context blocks are left out of the instruction entirely when the
corresponding input is absent.
"""

from dataclasses import dataclass, field
from typing import Any

from content_mapper.analysis.models import (
    AnalysisRequest,
    AnalysisResult,
    BrandVoiceProfile,
)
from content_mapper.analysis.schema import ANALYSIS_SCHEMA
from content_mapper.exceptions import ValidationError


@dataclass
class AnalysisPrompt:
    """Instruction text plus the output schema the model must honor."""

    instruction_text: str
    output_schema: dict[str, Any] = field(default_factory=lambda: ANALYSIS_SCHEMA)


@dataclass
class RefineContext:
    """Where the content being refined lives."""

    section_type: str
    keywords: list[str]
    target_audience: str


_ROLE = (
    "You are an expert UI/UX analyst, SEO specialist, and conversion copywriter. "
    "Perform a COMPREHENSIVE analysis of this website screenshot."
)

_VARIANT_LINES = """\
   - Generate 3-5 CONTENT VARIANTS with different:
     * Tones: professional, casual, friendly, authoritative, playful, empathetic
     * Lengths: short (concise), medium (balanced), long (detailed)
     * Each variant should have predicted CTR and reasoning"""

_MISSION = """\
**Your Mission:**

1. **Visual Analysis** - Detect ALL content sections (hero, subheading, features, CTA buttons, testimonials, forms, footer, navigation, pricing, body text).

2. **Content Generation** - For EACH section:
   - Extract current content (if visible text exists)
   - Generate PRIMARY SEO-optimized content
{variant_lines}   - Calculate readability score (Flesch Reading Ease)
   - Analyze sentiment (-1 to 1 scale)
   - Assess brand voice match (0-100)
   - Identify technical SEO issues
   - Flag accessibility concerns

3. **Technical SEO Audit**:
   - Suggest optimized meta title (50-60 chars)
   - Suggest meta description (150-160 chars)
   - Recommend H1 tag structure
   - Generate alt texts for visible images
   - Create JSON-LD schema markup
   - Suggest internal linking strategy

4. **Brand Voice Analysis**:
   - Detect current tone from existing content
   - Assess voice consistency across sections
   - Provide actionable improvement suggestions

5. **Performance Predictions**:
   - Estimate page load time based on visual complexity
   - Score mobile optimization (0-100)
   - Assess Core Web Vitals (LCP, FID, CLS)

6. **Comprehensive Recommendations**:
   - 5-10 prioritized, actionable SEO improvements
   - Conversion optimization tactics
   - Accessibility enhancements
   - Content strategy suggestions

**Important Guidelines:**
- Make content SEO-rich but natural (no keyword stuffing)
- Ensure brand voice consistency if guidelines provided
- All content should be conversion-focused
- Prioritize user experience and readability
- Consider mobile-first design principles
- Flag any critical issues (accessibility, SEO, UX)
- Give every section an id that is unique within this response

Return comprehensive analysis in the specified JSON format."""


def brand_voice_block(profile: BrandVoiceProfile) -> str:
    """Render brand voice guidelines for the instruction."""
    lines = [
        "**Brand Voice Guidelines:**",
        f"- Tone: {profile.tone.value}",
        f"- Formality Level: {profile.formality_level}/10",
        f"- Target Reading Level: Grade {profile.target_reading_level}",
        f"- Sentence Structure: {profile.sentence_structure}",
    ]
    if profile.vocabulary:
        lines.append(f"- Preferred Vocabulary: {', '.join(profile.vocabulary)}")
    if profile.avoid_words:
        lines.append(f"- Words to Avoid: {', '.join(profile.avoid_words)}")
    return "\n".join(lines)


def build_analysis_prompt(request: AnalysisRequest) -> AnalysisPrompt:
    """
    Build the instruction and schema for one screenshot analysis.

    Raises:
        ValidationError: If the target audience is blank or no keyword is given.
    """
    audience = request.target_audience.strip()
    keywords = [k.strip() for k in request.keywords if k.strip()]
    if not audience:
        raise ValidationError("Target audience is required", field="target_audience")
    if not keywords:
        raise ValidationError("At least one keyword is required", field="keywords")

    context = ["**Context:**"]
    if request.website_url.strip():
        context.append(f"- Website URL: {request.website_url.strip()}")
    context.append(f"- Target Audience: {audience}")
    context.append(f"- SEO Keywords: {', '.join(keywords)}")

    blocks = [_ROLE, "\n".join(context)]
    if request.brand_voice is not None:
        blocks.append(brand_voice_block(request.brand_voice))
    competitors = [c.strip() for c in request.competitor_context if c.strip()]
    if competitors:
        blocks.append(
            f"**Competitor Context:** Differentiate from these competitors: {', '.join(competitors)}"
        )

    variant_lines = _VARIANT_LINES + "\n" if request.generate_variants else ""
    blocks.append(_MISSION.format(variant_lines=variant_lines))

    return AnalysisPrompt(instruction_text="\n\n".join(blocks), output_schema=ANALYSIS_SCHEMA)


def build_insights_prompt(
    your_analysis: AnalysisResult,
    competitor_analyses: list[AnalysisResult],
    keywords: list[str],
) -> str:
    """Build the text-only prompt that synthesizes competitor insights."""
    your_keywords = [kw for section in your_analysis.sections for kw in section.keywords]

    competitor_blocks = []
    for i, comp in enumerate(competitor_analyses, start=1):
        competitor_blocks.append(
            f"Competitor {i}:\n"
            f"- SEO Score: {comp.overall_seo_score:g}\n"
            f"- Sections: {', '.join(s.type.value for s in comp.sections)}"
        )

    competitors_text = "\n".join(competitor_blocks)
    prompt = f"""\
Analyze competitive positioning for the target keywords: {', '.join(keywords)}

**Your Page:**
- SEO Score: {your_analysis.overall_seo_score:g}
- Sections: {', '.join(s.type.value for s in your_analysis.sections)}
- Keywords Used: {', '.join(your_keywords)}

**Competitors:**
{competitors_text}

Provide, for each competitor:
1. The competitor's strengths
2. The competitor's weaknesses
3. Your unique differentiators
4. Keyword gaps to exploit

Return a JSON array of objects with the fields competitorName, strengths,
weaknesses, uniqueDifferentiators and keywordGaps (each a list of strings
except competitorName). Name competitors "Competitor 1", "Competitor 2", ..."""
    return prompt


def build_refine_prompt(original_content: str, user_feedback: str, context: RefineContext) -> str:
    """Build the plain-text rewrite prompt for one content string."""
    return f"""\
Original content: "{original_content}"

User feedback: "{user_feedback}"

Context:
- Section Type: {context.section_type}
- Keywords: {', '.join(context.keywords)}
- Target Audience: {context.target_audience}

Refine the content based on user feedback while maintaining SEO best practices.
Return ONLY the refined content, no explanations."""
