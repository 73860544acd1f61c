"""Default entity dictionaries. Customize via a dictionaries.yaml file."""

from ..models import EntityType

KNOWN_PEOPLE = [
    "DHH", "David", "Simon",
    "Paul Graham", "Patrick Collison", "Sam Altman",
]

KNOWN_TOOLS = [
    "Supabase", "Ollama", "GitHub", "Cloudflare", "Vercel",
    "beads", "beats", "bv", "btv", "bd", "Factory", "Droid",
    "Claude", "ChatGPT", "GPT", "Cursor", "VSCode",
    "React", "Next.js", "TypeScript", "Go", "Python", "Rust",
    "Docker", "Kubernetes", "AWS", "GCP", "PostgreSQL", "Redis",
    "Notion", "Linear", "Slack", "Discord", "Figma",
    "WezTerm", "tmux", "nvim", "vim", "git",
]

KNOWN_CONCEPTS = [
    "commitment", "identity", "narrative substrate", "psychoid buffer",
    "agent", "agentic", "workflow", "automation", "flywheel",
    "synthesis", "pattern", "insight", "discovery",
]

KNOWN_PROJECTS = [
    "runcible", "modern-minuteman", "modern minuteman",
]

KNOWN_ORGANIZATIONS = [
    "Factory", "Anthropic", "OpenAI", "Google", "Meta", "Microsoft",
    "Stripe", "Vercel", "Cloudflare", "37signals", "Basecamp",
]

ENTITY_DICTIONARIES: dict[EntityType, list[str]] = {
    EntityType.PERSON: KNOWN_PEOPLE,
    EntityType.TOOL: KNOWN_TOOLS,
    EntityType.CONCEPT: KNOWN_CONCEPTS,
    EntityType.PROJECT: KNOWN_PROJECTS,
    EntityType.ORGANIZATION: KNOWN_ORGANIZATIONS,
}

# Capitalized words that are almost never names
COMMON_WORDS = frozenset({
    "The", "This", "That", "These", "Those",
    "What", "When", "Where", "Which", "Who",
    "How", "Why", "Some", "Many", "Most",
    "Such", "Each", "Every", "Both", "All",
    "Any", "Other", "Another", "First", "Last",
    "New", "Old", "Good", "Great", "Best",
    "Just", "Only", "Also", "Even", "Still",
    "Now", "Here", "There", "Today", "Tomorrow",
    "Monday", "Tuesday", "Wednesday", "Thursday",
    "Friday", "Saturday", "Sunday",
    "January", "February", "March", "April",
    "May", "June", "July", "August",
    "September", "October", "November", "December",
})

_CONFIG_KEYS = {
    "people": EntityType.PERSON,
    "tools": EntityType.TOOL,
    "concepts": EntityType.CONCEPT,
    "projects": EntityType.PROJECT,
    "organizations": EntityType.ORGANIZATION,
}


def dictionaries_from_config(dictionaries: dict) -> dict[EntityType, list[str]]:
    """Overlay dictionaries from a loaded config file onto the defaults."""
    merged = {etype: list(names) for etype, names in ENTITY_DICTIONARIES.items()}
    for key, etype in _CONFIG_KEYS.items():
        if key in dictionaries:
            merged[etype] = [str(n) for n in dictionaries[key] or []]
    return merged
