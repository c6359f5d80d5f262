"""Render profiles and items into canonical text.

The output is stored verbatim and also compared byte-for-byte to decide
whether a stored record changed, so every function here must be
deterministic for identical input.
"""

from __future__ import annotations

from datetime import datetime, timezone

from .records import Item, Profile

NOT_SPECIFIED = "Not specified"


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _count(value: int) -> str:
    return f"{value:,}"


def _item_timestamp(item: Item) -> str:
    if item.time_parsed is not None:
        moment = item.time_parsed
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    if item.timestamp is not None:
        moment = datetime.fromtimestamp(item.timestamp, tz=timezone.utc)
        return moment.isoformat().replace("+00:00", "Z")
    return "unknown time"


def _engagement(item: Item) -> str:
    return f"{item.likes} likes, {item.reposts} reposts, {item.replies} replies"


def format_profile(profile: Profile) -> str:
    sections = [
        f"Profile: @{profile.username}",
        f"Name: {profile.name or NOT_SPECIFIED}",
        f"Bio: {profile.biography or NOT_SPECIFIED}",
        "Metrics:",
        f"- Followers: {_count(profile.followers_count)}",
        f"- Following: {_count(profile.following_count)}",
        f"- Total Posts: {_count(profile.items_count)}",
        f"- Media Posts: {_count(profile.media_count)}",
        f"- Likes Given: {_count(profile.likes_count)}",
        f"- Listed In: {_count(profile.listed_count)}",
        "Account Details:",
        f"- Joined: {profile.joined or NOT_SPECIFIED}",
        f"- Location: {profile.location or NOT_SPECIFIED}",
        f"- Website: {profile.website or NOT_SPECIFIED}",
        "Status:",
        f"- Verified: {_yes_no(profile.is_verified)}",
        f"- Subscriber Verified: {_yes_no(profile.is_blue_verified)}",
        f"- Private Account: {_yes_no(profile.is_private)}",
        "Media:",
        f"- Avatar: {profile.avatar or NOT_SPECIFIED}",
        f"- Banner: {profile.banner}" if profile.banner else None,
        (
            f"Pinned Posts: {', '.join(profile.pinned_item_ids)}"
            if profile.pinned_item_ids
            else None
        ),
    ]
    return "\n".join(section for section in sections if section)


def format_item(item: Item) -> str:
    timestamp = _item_timestamp(item)
    author = item.username or "unknown"

    if item.is_repost and item.reposted_item is not None:
        original = item.reposted_item
        content = (
            f"Repost by @{author} ({timestamp})\n"
            f"Original post by @{original.username or 'unknown'}:\n"
            f"{original.text}\n\n"
            f"Original Engagement: {_engagement(original)}"
        )
    elif item.is_quote and item.quoted_item is not None:
        quoted = item.quoted_item
        content = (
            f"Quote by @{author} ({timestamp})\n"
            f"{item.text}\n\n"
            f"Engagement: {_engagement(item)}\n"
            f"Quoted post by @{quoted.username or 'unknown'}:\n"
            f"{quoted.text}\n\n"
            f"Quoted Engagement: {_engagement(quoted)}"
        )
    else:
        content = (
            f"Post by @{author} ({timestamp})\n"
            f"{item.text}\n\n"
            f"Engagement: {_engagement(item)}"
        )

    if item.photos:
        content += f"\nPhotos: {', '.join(item.photos)}"
    if item.videos:
        content += f"\nVideos: {', '.join(item.videos)}"
    if item.urls:
        content += f"\nLinks: {', '.join(item.urls)}"
    if item.hashtags:
        content += f"\nHashtags: {' '.join(item.hashtags)}"
    return content


__all__ = ["NOT_SPECIFIED", "format_item", "format_profile"]
