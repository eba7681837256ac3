"""
Prompt Builder

Renders an AnalysisContext into the instruction string sent to the vision
model. Output is deterministic for identical input: the response parser is
keyed to the section labels emitted in the response-format contract below.
"""

from typing import Iterable, Optional, Union

from .models import AnalysisContext, BusinessContext, TechnicalContext, UserContext, UserPersona


PERSONAS: dict[str, UserPersona] = {
    "business-user": UserPersona(
        name="Business Professional",
        expertise="intermediate",
        device="desktop-primary",
        urgency="medium",
        goals=["efficiency", "accuracy", "professional-appearance"],
        pain_points=["complex interfaces", "slow loading", "unclear navigation"],
        context="Professional work environment, needs reliable tools",
    ),
    "mobile-consumer": UserPersona(
        name="Mobile Consumer",
        expertise="novice",
        device="mobile-primary",
        urgency="high",
        goals=["speed", "simplicity", "trust"],
        pain_points=["small touch targets", "slow loading", "complex forms"],
        context="On-the-go usage, limited attention, thumb navigation",
    ),
    "power-user": UserPersona(
        name="Power User",
        expertise="expert",
        device="mixed",
        urgency="low",
        goals=["customization", "advanced-features", "keyboard-shortcuts"],
        pain_points=["lack of shortcuts", "limited customization", "dumbed-down interfaces"],
        context="Daily heavy usage, values efficiency over simplicity",
    ),
    "accessibility-user": UserPersona(
        name="Accessibility User",
        expertise="intermediate",
        device="desktop-primary",
        urgency="medium",
        goals=["screen-reader-compatibility", "keyboard-navigation", "high-contrast"],
        pain_points=["poor alt text", "keyboard traps", "low contrast"],
        context="Uses assistive technologies, relies on semantic HTML",
    ),
    "first-time-visitor": UserPersona(
        name="First-Time Visitor",
        expertise="novice",
        device="mixed",
        urgency="high",
        goals=["understand-value", "quick-trial", "low-commitment"],
        pain_points=["unclear value prop", "complex signup", "information overload"],
        context="Evaluating product, high bounce risk, needs immediate value",
    ),
}


ANALYSIS_INSTRUCTIONS: dict[str, str] = {
    "usability": """**USABILITY ANALYSIS:**
- Is the interface intuitive for this user's expertise level?
- Can the user complete their intended task efficiently?
- Are there any confusing or misleading elements?
- Does the information architecture make sense?
- Are interactive elements clearly identifiable?""",
    "accessibility": """**ACCESSIBILITY ANALYSIS:**
- WCAG 2.1 compliance (AA minimum, AAA preferred)
- Color contrast ratios (4.5:1 for normal text, 3:1 for large text)
- Keyboard navigation support and visible focus indicators
- Screen reader compatibility (semantic HTML, ARIA labels)
- Alternative text for images, form labels and error handling
- Cite the WCAG success criterion (e.g. WCAG 1.4.3) and the CSS selector for each issue""",
    "visual-design": """**VISUAL DESIGN ANALYSIS:**
- Typography hierarchy and readability
- Color usage and brand consistency
- Visual balance, spacing and layout effectiveness
- Visual feedback for interactions
- Overall aesthetic appeal and professionalism""",
    "performance": """**PERFORMANCE ANALYSIS:**
- Perceived performance and loading states
- Image optimization and lazy loading
- User perception of speed
- Mobile performance considerations""",
    "mobile-optimization": """**MOBILE OPTIMIZATION ANALYSIS:**
- Touch target sizes (minimum 44px)
- Thumb-friendly navigation
- Mobile-first responsive design
- One-handed usage considerations""",
    "conversion-optimization": """**CONVERSION OPTIMIZATION ANALYSIS:**
- Clear value proposition presentation
- Friction points in the conversion funnel
- Trust signals and credibility indicators
- Call-to-action effectiveness and form optimization""",
    "brand-consistency": """**BRAND CONSISTENCY ANALYSIS:**
- Design system adherence
- Brand voice and tone in copy
- Visual identity and component usage consistency""",
    "error-handling": """**ERROR HANDLING ANALYSIS:**
- Error prevention strategies
- Clear error messaging and recovery paths
- Validation feedback timing""",
}


NOT_SPECIFIED = "Not specified"


def get_persona(name: str) -> Optional[UserPersona]:
    """Look up a persona preset by name (e.g. "mobile-consumer")"""
    return PERSONAS.get(name)


def _resolve_persona(persona: Union[UserPersona, str, None]) -> Union[UserPersona, str, None]:
    if isinstance(persona, str):
        return PERSONAS.get(persona, persona)
    return persona


def describe_persona(persona: Union[UserPersona, str, None]) -> str:
    persona = _resolve_persona(persona)
    if persona is None:
        return "a general user"
    if isinstance(persona, str):
        return persona
    return f"{persona.name} ({persona.expertise} level, {persona.device} user, {persona.urgency} urgency)"


def format_user_context(user: UserContext) -> str:
    persona = _resolve_persona(user.persona)
    if isinstance(persona, UserPersona):
        lines = [
            f"Persona: {persona.name}",
            f"Expertise: {persona.expertise}",
            f"Primary Device: {persona.device}",
            f"Urgency: {persona.urgency}",
            f"Goals: {', '.join(persona.goals) or NOT_SPECIFIED}",
            f"Pain Points: {', '.join(persona.pain_points) or NOT_SPECIFIED}",
            f"Context: {persona.context or NOT_SPECIFIED}",
        ]
    else:
        lines = [f"Persona: {persona or 'General user'}"]

    lines += [
        f"Device Context: {user.device_context}",
        f"Expertise Level: {user.expertise or NOT_SPECIFIED}",
        f"Urgency: {user.urgency or 'Normal'}",
        f"Time Constraint: {user.time_constraint or 'Normal'}",
        f"Trust Level: {user.trust_level or 'Medium'}",
        f"Business Goals: {', '.join(user.business_goals) or NOT_SPECIFIED}",
    ]
    return "\n".join(lines)


def format_business_context(business: Optional[BusinessContext]) -> str:
    if business is None:
        return NOT_SPECIFIED
    return "\n".join([
        f"Industry: {business.industry}",
        f"Conversion Goal: {business.conversion_goal}",
        f"Competitive Advantage: {business.competitive_advantage or NOT_SPECIFIED}",
        f"Brand Personality: {business.brand_personality or NOT_SPECIFIED}",
        f"Target Audience: {business.target_audience or NOT_SPECIFIED}",
    ])


def format_technical_context(technical: Optional[TechnicalContext]) -> str:
    if technical is None:
        return NOT_SPECIFIED
    return "\n".join([
        f"Framework: {technical.framework or NOT_SPECIFIED}",
        f"Design System: {technical.design_system or NOT_SPECIFIED}",
        f"Device Support: {technical.device_support or NOT_SPECIFIED}",
        f"Performance Target: {technical.performance_target or NOT_SPECIFIED}",
        f"Accessibility Target: {technical.accessibility_target or 'WCAG-AA'}",
    ])


def build_prompt(context: AnalysisContext, analysis_types: Iterable[str]) -> str:
    """
    Build the master analysis prompt.

    Args:
        context: Situational context for this screenshot
        analysis_types: Requested analysis types, rendered in the given order

    Returns:
        Prompt text with labeled context sections and the response-format
        contract the parser understands
    """
    types = list(dict.fromkeys(analysis_types))
    critical = ", ".join(context.critical_elements) or "All visible elements"
    instructions = "\n\n".join(
        ANALYSIS_INSTRUCTIONS[t] for t in types if t in ANALYSIS_INSTRUCTIONS
    )

    prompt = f"""You are a world-class UX expert, accessibility specialist, and design systems consultant analyzing a user interface through the lens of REAL USER EXPERIENCE.

**ANALYSIS CONTEXT**
User Stage: {context.stage}
User Intent: {context.user_intent}
Critical Elements: {critical}
"""

    if context.page_url:
        prompt += f"Page URL: {context.page_url}\n"

    prompt += f"""
**USER CONTEXT**
{format_user_context(context.user_context)}

**BUSINESS CONTEXT**
{format_business_context(context.business_context)}

**TECHNICAL CONTEXT**
{format_technical_context(context.technical_context)}

**ANALYSIS REQUIREMENTS**
You must analyze this interface for: {', '.join(types)}

{instructions}

**RESPONSE FORMAT**
Provide your analysis in this EXACT format:

**OVERALL UX SCORE: X/10**

Category scores (include only the ones you analyzed):
Usability: X/10
Accessibility: X/10
Visual Design: X/10
Performance: X/10

**STRENGTHS:**
- [What works exceptionally well for this specific user context]

**CRITICAL ISSUES:** (Blocks user success)
- [Issues that prevent task completion or cause significant user frustration]

**MAJOR ISSUES:** (Impacts user experience)
- [Problems that make the interface difficult or unpleasant to use]

**MINOR ISSUES:** (Polish opportunities)
- [Small improvements that would enhance the experience]

**SPECIFIC RECOMMENDATIONS:**
- [One bullet per recommendation: the problem, its impact on this user, and a specific, actionable solution. Prefix fixes with "Fix:"]

**CONTEXTUAL INSIGHTS:**
- How well does this interface serve the user's specific intent: "{context.user_intent}"?
- What would make this experience more successful for this user context?

**DEVICE-SPECIFIC NOTES:**
- Any issues specific to the {context.user_context.device_context} experience?

Remember: This user is {describe_persona(context.user_context.persona)} in the context of {context.stage}. Every recommendation should consider their specific needs, constraints, and goals.

Be specific, actionable, and focused on REAL USER SUCCESS."""

    return prompt


SPECIALIZED_FOCUS: dict[str, tuple[list[str], str]] = {
    "ecommerce": (
        ["usability", "conversion-optimization", "mobile-optimization"],
        """**E-COMMERCE SPECIFIC FOCUS:**
- Product discoverability and presentation
- Shopping cart and checkout flow optimization
- Trust signals and security indicators
- Price presentation and value communication""",
    ),
    "saas": (
        ["usability", "accessibility", "performance"],
        """**SAAS SPECIFIC FOCUS:**
- Dashboard clarity and information hierarchy
- Feature discoverability and onboarding
- Data visualization effectiveness
- Workflow efficiency""",
    ),
    "design-system": (
        ["visual-design", "accessibility", "brand-consistency"],
        """**DESIGN SYSTEM SPECIFIC FOCUS:**
- Component consistency and reusability
- Accessibility built-in by default
- Responsive behavior patterns""",
    ),
    "mobile": (
        ["mobile-optimization", "usability", "performance"],
        """**MOBILE APP SPECIFIC FOCUS:**
- Native platform conventions adherence
- Gesture support and touch interactions
- Battery and performance considerations""",
    ),
}


def specialization_for(context: AnalysisContext) -> Optional[str]:
    """Pick a specialized focus from the context, if any applies"""
    industry = (context.business_context.industry.lower() if context.business_context else "")
    if industry in ("e-commerce", "ecommerce"):
        return "ecommerce"
    if industry == "saas":
        return "saas"
    if context.technical_context and context.technical_context.design_system:
        return "design-system"
    if "mobile" in context.user_context.device_context.lower():
        return "mobile"
    return None


def select_prompt(context: AnalysisContext, analysis_types: Iterable[str]) -> str:
    """
    Choose between the master prompt and a specialized variant.

    Specialized variants analyze a fixed set of types and append a focus
    block; the response-format contract stays the same.
    """
    key = specialization_for(context)
    if key is None:
        return build_prompt(context, analysis_types)

    types, focus = SPECIALIZED_FOCUS[key]
    return f"{build_prompt(context, types)}\n\n{focus}"


def build_journey_prompt(
    journey_name: str,
    current_stage: str,
    previous_stages: list[str],
    context: AnalysisContext,
) -> str:
    """Prompt for one stage of a multi-step user journey"""
    return f"""{build_prompt(context, ["usability", "conversion-optimization"])}

**USER JOURNEY CONTEXT:**
Journey: {journey_name}
Current Stage: {current_stage}
Previous Stages: {' -> '.join(previous_stages) or 'None'}

Consider the cumulative user experience, not just this isolated screen:
does this stage follow logically from the previous ones, and are the next
steps clear?"""
