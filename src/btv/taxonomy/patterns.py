"""Default keyword tables for taxonomy detection.

Declaration order matters: on a score tie the first channel/source listed
here wins.
"""

from ..models import Channel, Source

CHANNEL_PATTERNS: dict[Channel, list[str]] = {
    Channel.COACHING: ["coaching", "nick", "mentor", "insight from", "advice", "guidance", "feedback"],
    Channel.RESEARCH: ["research", "study", "paper", "investigation", "analysis", "exploring", "learned"],
    Channel.DISCOVERY: ["discovery", "found", "discovered", "stumbled", "noticed", "came across", "interesting"],
    Channel.DEVELOPMENT: ["development", "built", "implemented", "code", "programming", "shipped", "deployed", "refactor"],
    Channel.REFLECTION: ["reflection", "thinking", "realized", "synthesis", "pondering", "contemplating", "insight"],
    Channel.REFERENCE: ["reference", "bookmark", "save", "purchase", "reminder", "note to self", "later"],
    Channel.MILESTONE: ["milestone", "complete", "shipped", "published", "finished", "achieved", "launched"],
}

SOURCE_PATTERNS: dict[Source, list[str]] = {
    Source.TWITTER: ["twitter", "x discovery", "tweet", "@", "x.com"],
    Source.GITHUB: ["github", "repo", "issue", "pr", "pull request", "commit"],
    Source.WEB: ["web", "article", "blog", "site", "http", "url", "link"],
    Source.CONVERSATION: ["coaching", "call", "chat", "conversation", "meeting", "discussion", "talked"],
    Source.BOOK: ["book", "reading", "chapter", "author", "page"],
    Source.SESSION: ["session", "droid", "factory", "agent", "claude"],
    Source.INTERNAL: ["thinking", "reflection", "realized", "insight", "idea"],
}

# impetus.meta["channel"] values, checked before keyword scoring
META_CHANNEL_MAP: dict[str, Source] = {
    "twitter": Source.TWITTER,
    "x": Source.TWITTER,
    "github": Source.GITHUB,
    "web": Source.WEB,
    "browser": Source.WEB,
    "book": Source.BOOK,
    "reading": Source.BOOK,
    "session": Source.SESSION,
    "agent": Source.SESSION,
    "droid": Source.SESSION,
    "coaching": Source.CONVERSATION,
    "call": Source.CONVERSATION,
    "internal": Source.INTERNAL,
    "reflection": Source.INTERNAL,
}


def patterns_from_config(dictionaries: dict) -> dict:
    """Build classifier keyword arguments from a loaded dictionaries file.

    Channel and source names are matched case-insensitively against the
    enum member names.
    """
    kwargs = {}
    if "channels" in dictionaries:
        kwargs["channel_patterns"] = {
            Channel[name.upper()]: [p.lower() for p in pats]
            for name, pats in dictionaries["channels"].items()
        }
    if "sources" in dictionaries:
        kwargs["source_patterns"] = {
            Source[name.upper()]: [p.lower() for p in pats]
            for name, pats in dictionaries["sources"].items()
        }
    if "meta_channels" in dictionaries:
        kwargs["meta_channel_map"] = {
            key.lower(): Source[name.upper()]
            for key, name in dictionaries["meta_channels"].items()
        }
    return kwargs
