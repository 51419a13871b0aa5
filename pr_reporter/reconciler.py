"""
Reconciliation engine for the PR Reporter.

Given the feedback a run wants to show and the comments earlier runs left
behind, compute the operations that bring GitHub to the desired state. The
functions here do no I/O and keep no state between calls: each call takes a
snapshot of existing comments and returns a fresh ReconciliationPlan for a
channel reporter to execute.

Two fingerprinting schemes are in use. Keyed channels (line comments) compare
the new rendered body against every merged section of the comment at the same
key. The summary channel compares the whole rendered body against the hash
stored in the marker of the existing comment.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Hashable, List, Optional, Sequence, Set, Tuple, Union

from . import comment_marker
from .comment_marker import SECTION_SEPARATOR
from .models import CommentMode, FeedbackItem, TrackedComment


logger = logging.getLogger(__name__)

SKIP_DUPLICATE = "duplicate content"
SKIP_UNCHANGED = "unchanged content"
SKIP_ALREADY_STRUCK = "already struck through"


@dataclass(frozen=True)
class Create:
    """Post a new comment with ``body`` (marker included)."""
    body: str
    key: Optional[Hashable] = None
    item_count: int = 1


@dataclass(frozen=True)
class UpdateMerge:
    """Replace the body of ``target_id`` with ``body`` (marker included)."""
    target_id: int
    body: str
    key: Optional[Hashable] = None
    item_count: int = 1


@dataclass(frozen=True)
class Skip:
    """Nothing to do for these items."""
    reason: str
    key: Optional[Hashable] = None
    comment_id: Optional[int] = None
    item_count: int = 1


@dataclass(frozen=True)
class Delete:
    comment_id: int


@dataclass(frozen=True)
class StrikethroughUpdate:
    comment_id: int
    body: str


Operation = Union[Create, UpdateMerge, Skip, Delete, StrikethroughUpdate]


@dataclass
class ReconciliationPlan:
    """Ordered operations plus the keys where more than one comment was found."""
    operations: List[Operation] = field(default_factory=list)
    anomalies: List[Hashable] = field(default_factory=list)

    def of_type(self, op_type) -> List[Operation]:
        return [op for op in self.operations if isinstance(op, op_type)]

    @property
    def creates(self) -> List[Create]:
        return self.of_type(Create)

    @property
    def updates(self) -> List[UpdateMerge]:
        return self.of_type(UpdateMerge)

    @property
    def skips(self) -> List[Skip]:
        return self.of_type(Skip)

    @property
    def deletes(self) -> List[Delete]:
        return self.of_type(Delete)

    @property
    def strikethroughs(self) -> List[StrikethroughUpdate]:
        return self.of_type(StrikethroughUpdate)

    @property
    def is_noop(self) -> bool:
        """True when executing the plan would make no remote call."""
        return all(isinstance(op, Skip) for op in self.operations)

    def __len__(self) -> int:
        return len(self.operations)


@dataclass(frozen=True)
class KeyedChannel:
    """The channel-specific parts of keyed reconciliation.

    Attributes:
        identifier: Marker identifier scoping the channel's comments
        key_for_comment: Tracking key of an existing comment, or None if the
            comment cannot be placed (for example an outdated review comment)
        render: Body text for one feedback item, without marker
    """
    identifier: str
    key_for_comment: Callable[[TrackedComment], Optional[Hashable]]
    render: Callable[[FeedbackItem], str]


def owned_comments(existing: Sequence[TrackedComment], identifier: str) -> List[TrackedComment]:
    """Keep only comments whose marker names this identifier."""
    return [c for c in existing if comment_marker.contains(identifier, c.body)]


def authoritative(comments: Sequence[TrackedComment]) -> Optional[TrackedComment]:
    """The comment that receives updates when several share a key: highest id."""
    if not comments:
        return None
    return max(comments, key=lambda c: c.id)


def group_by_key(
    existing: Sequence[TrackedComment],
    key_for_comment: Callable[[TrackedComment], Optional[Hashable]],
) -> "OrderedDict[Hashable, List[TrackedComment]]":
    """Group comments by tracking key, keeping every duplicate."""
    groups: "OrderedDict[Hashable, List[TrackedComment]]" = OrderedDict()
    for comment in existing:
        key = key_for_comment(comment)
        if key is None:
            continue
        groups.setdefault(key, []).append(comment)
    return groups


def _section_fingerprints(comments: Sequence[TrackedComment]) -> Set[str]:
    fingerprints: Set[str] = set()
    for comment in comments:
        for section in comment_marker.split_sections(comment.body):
            fingerprints.add(comment_marker.content_hash(section.strip()))
    return fingerprints


@dataclass
class _KeyState:
    existing: List[TrackedComment]
    fingerprints: Set[str]
    new_sections: List[str] = field(default_factory=list)


def plan_keyed(
    desired: Sequence[Tuple[Hashable, FeedbackItem]],
    existing: Sequence[TrackedComment],
    channel: KeyedChannel,
) -> ReconciliationPlan:
    """Plan per-key create/merge/skip operations.

    For each desired item: no comment at its key means Create; a comment
    already holding the same content (in any merged section) means Skip;
    otherwise the item is appended as a new section to the highest-id comment
    at that key. Items sharing a key within one pass are folded into a single
    write so a pass never creates two comments at one key.

    Args:
        desired: (tracking key, item) pairs in posting order
        existing: Snapshot of comments fetched at the start of the pass
        channel: Key extraction and rendering for the channel

    Returns:
        The plan; comments not owned by ``channel.identifier`` are never touched
    """
    plan = ReconciliationPlan()
    groups = group_by_key(owned_comments(existing, channel.identifier), channel.key_for_comment)

    for key, comments in groups.items():
        if len(comments) > 1:
            plan.anomalies.append(key)
            ids = sorted(c.id for c in comments)
            logger.warning(
                f"Found {len(comments)} tracked comments at {key} (ids {ids}); using {ids[-1]} as authoritative"
            )

    states: "OrderedDict[Hashable, _KeyState]" = OrderedDict()
    skips: List[Skip] = []

    for key, item in desired:
        state = states.get(key)
        if state is None:
            comments = groups.get(key, [])
            state = _KeyState(existing=comments, fingerprints=_section_fingerprints(comments))
            states[key] = state

        body = channel.render(item).strip()
        fingerprint = comment_marker.content_hash(body)
        if fingerprint in state.fingerprints:
            target = authoritative(state.existing)
            skips.append(Skip(SKIP_DUPLICATE, key=key, comment_id=target.id if target else None))
            continue

        state.fingerprints.add(fingerprint)
        state.new_sections.append(body)

    for key, state in states.items():
        if not state.new_sections:
            continue
        target = authoritative(state.existing)
        if target is None:
            body = SECTION_SEPARATOR.join(state.new_sections)
            plan.operations.append(Create(
                body=comment_marker.add_marker(body, channel.identifier),
                key=key,
                item_count=len(state.new_sections),
            ))
        else:
            merged = SECTION_SEPARATOR.join([comment_marker.remove_marker(target.body)] + state.new_sections)
            plan.operations.append(UpdateMerge(
                target_id=target.id,
                body=comment_marker.add_marker(merged, channel.identifier),
                key=key,
                item_count=len(state.new_sections),
            ))

    plan.operations.extend(skips)
    return plan


def plan_summary(
    body: str,
    existing: Sequence[TrackedComment],
    identifier: str,
    mode: CommentMode = CommentMode.UPDATE,
    item_count: int = 1,
) -> ReconciliationPlan:
    """Plan the single summary comment for an identifier.

    In update mode the whole body is fingerprinted and compared with the hash
    stored in the marker of the authoritative existing comment: equal means
    Skip, different means a full replacement, absent means Create.
    """
    plan = ReconciliationPlan()
    marked = comment_marker.add_marker(body, identifier)
    owned = owned_comments(existing, identifier)

    if mode is CommentMode.APPEND:
        plan.operations.append(Create(marked, item_count=item_count))
        return plan

    if mode is CommentMode.REPLACE:
        plan.operations.extend(Delete(c.id) for c in owned)
        plan.operations.append(Create(marked, item_count=item_count))
        return plan

    target = authoritative(owned)
    if target is None:
        plan.operations.append(Create(marked, item_count=item_count))
        return plan

    if len(owned) > 1:
        plan.anomalies.append(identifier)
        logger.warning(
            f"Found {len(owned)} summary comments for '{identifier}'; updating the newest (id {target.id})"
        )

    marker = comment_marker.parse(target.body)
    if marker is not None and marker.content_hash == comment_marker.content_hash(body):
        plan.operations.append(Skip(SKIP_UNCHANGED, comment_id=target.id, item_count=item_count))
    else:
        plan.operations.append(UpdateMerge(target.id, marked, item_count=item_count))
    return plan


def strike_through(body: str, identifier: str) -> str:
    """Strike every content line of a comment and re-add the marker.

    Blank lines, HTML comment lines (such as the sticky sentinel) and lines
    already struck are left alone, so striking twice is a no-op.
    """
    lines = []
    for line in comment_marker.remove_marker(body).split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("<!--") or stripped.startswith("~~"):
            lines.append(line)
        else:
            lines.append(f"~~{line}~~")
    return comment_marker.add_marker("\n".join(lines), identifier)


def plan_cleanup(
    existing: Sequence[TrackedComment],
    identifier: str,
    mode: CommentMode = CommentMode.UPDATE,
) -> ReconciliationPlan:
    """Plan removal of the comments an identifier left behind.

    Sticky comments are struck through instead of deleted, except in replace
    mode which deletes everything. Append mode keeps the full history.
    """
    plan = ReconciliationPlan()
    if mode is CommentMode.APPEND:
        return plan

    for comment in owned_comments(existing, identifier):
        if mode is CommentMode.UPDATE and comment_marker.is_sticky(comment.body):
            stricken = strike_through(comment.body, identifier)
            if stricken == comment.body:
                plan.operations.append(Skip(SKIP_ALREADY_STRUCK, comment_id=comment.id))
            else:
                plan.operations.append(StrikethroughUpdate(comment.id, stricken))
        else:
            plan.operations.append(Delete(comment.id))
    return plan

