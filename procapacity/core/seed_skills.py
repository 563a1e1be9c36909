"""Preset skills by category and the categories seeded for each industry."""

SEED_SKILLS: dict[str, list[str]] = {
    "CREATIVE": [
        "Figma design",
        "Copywriting",
        "Video editing",
        "Graphic design",
        "Motion graphics",
        "UI/UX design",
        "Brand identity",
        "Illustration",
        "Photography",
        "3D modeling",
    ],
    "DIGITAL_PAID": [
        "Paid social",
        "Google Ads",
        "SEO",
        "Email marketing",
        "CRO",
        "Analytics",
        "Facebook Ads",
        "LinkedIn Ads",
        "Display advertising",
        "Programmatic",
    ],
    "STRATEGY": [
        "Account management",
        "Client strategy",
        "Project management",
        "Discovery/audit",
        "Business strategy",
        "Marketing strategy",
        "Content strategy",
        "Campaign planning",
        "Stakeholder management",
    ],
    "DEVELOPMENT": [
        "Web development",
        "WordPress",
        "Shopify",
        "React",
        "API integration",
        "Frontend development",
        "Backend development",
        "Mobile app development",
        "Database design",
        "DevOps",
    ],
    "LEGAL": [
        "Contract drafting",
        "Litigation support",
        "Regulatory compliance",
        "IP research",
        "Corporate law",
        "Employment law",
        "Real estate law",
        "Tax law",
        "Legal research",
        "Discovery",
    ],
    "FINANCE": [
        "Financial modeling",
        "Tax planning",
        "Audit prep",
        "M&A due diligence",
        "Bookkeeping",
        "Payroll",
        "Financial analysis",
        "Budget planning",
        "Risk assessment",
    ],
    "CONSULTING": [
        "Change management",
        "Data analysis",
        "Workshop facilitation",
        "Research",
        "Process improvement",
        "Management consulting",
        "Strategy consulting",
        "Operations consulting",
        "HR consulting",
    ],
    "GENERAL": [
        "Stakeholder management",
        "Reporting",
        "Research",
        "Administration",
        "Presentation skills",
        "Client communication",
        "Documentation",
        "Quality assurance",
    ],
    "CUSTOM": [],
}

INDUSTRY_SKILL_MAP: dict[str, list[str]] = {
    "MARKETING_AGENCY": ["CREATIVE", "DIGITAL_PAID", "STRATEGY", "DEVELOPMENT", "GENERAL"],
    "LAW_FIRM": ["LEGAL", "FINANCE", "GENERAL"],
    "DESIGN_STUDIO": ["CREATIVE", "DEVELOPMENT", "STRATEGY", "GENERAL"],
    "CONSULTANCY": ["CONSULTING", "FINANCE", "STRATEGY", "GENERAL"],
    "ARCHITECTURE": ["CREATIVE", "STRATEGY", "GENERAL"],
    "CUSTOM": ["GENERAL"],
}

INDUSTRY_OPTIONS = [
    {
        "value": "MARKETING_AGENCY",
        "label": "Marketing Agency",
        "description": "Paid media, SEO, creative, content, and development teams",
    },
    {
        "value": "LAW_FIRM",
        "label": "Law Firm",
        "description": "Litigation, corporate, compliance, and legal research teams",
    },
    {
        "value": "DESIGN_STUDIO",
        "label": "Design Studio",
        "description": "UI/UX, brand, graphic design, and frontend development teams",
    },
    {
        "value": "CONSULTANCY",
        "label": "Consultancy",
        "description": "Strategy, change management, data analysis, and advisory teams",
    },
    {
        "value": "ARCHITECTURE",
        "label": "Architecture Firm",
        "description": "Design, planning, project management, and creative teams",
    },
    {
        "value": "CUSTOM",
        "label": "Other / Custom",
        "description": "Start with general skills and add your own as needed",
    },
]


def skills_for_industry(industry: str) -> list[tuple[str, str]]:
    """(name, category) pairs for an industry, first category wins on duplicates."""
    seen: set[str] = set()
    result = []
    for category in INDUSTRY_SKILL_MAP.get(industry, []):
        for name in SEED_SKILLS.get(category, []):
            if name in seen:
                continue
            seen.add(name)
            result.append((name, category))
    return result
