"""Tests for the prune decision engine"""
from unittest.mock import Mock

import pytest

from git_workon.exceptions import GitBackendError
from git_workon.models.prune import PruneCandidate, PruneSelector, UnsafeReason
from git_workon.services.prune_service import RULE_DEFAULT_BRANCH, RULE_MAIN_WORKTREE, PruneEngine
from conftest import make_status, make_worktree


def candidate(name, branch=None, status=None, **kwargs):
    return PruneCandidate(make_worktree(name, branch=branch, **kwargs), status if status is not None else make_status())


@pytest.fixture
def engine():
    return PruneEngine()


@pytest.fixture
def candidates():
    return [
        candidate("main", status=make_status()),
        candidate("feature/done", status=make_status(merged=True)),
        candidate("feature/gone", status=make_status(gone=True, unpushed=True)),
        candidate("feature/dirty", status=make_status(merged=True, dirty=True)),
        candidate("feature/wip", status=make_status(unpushed=True)),
        candidate("release/1.0", status=make_status(merged=True)),
        candidate("scratch", branch="", status=make_status(detached=True)),
    ]


def names(worktrees):
    return [wt.name for wt in worktrees]


class TestSelection:
    def test_by_name(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(names=("feature/done",)))
        assert names(plan.to_remove) == ["feature/done"]

    def test_by_branch_and_path(self, engine):
        cands = [candidate("dir-name", branch="feature/x"), candidate("other")]
        plan = engine.plan(cands, PruneSelector(names=("feature/x", "/work/other")))
        assert names(plan.to_remove) == ["dir-name", "other"]

    def test_merged(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(merged=True), default_branch="main")
        assert names(plan.to_remove) == ["feature/done", "release/1.0"]
        assert [u.worktree.name for u in plan.skipped_unsafe] == ["feature/dirty"]

    def test_gone(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(gone=True), allow_unpushed=True)
        assert names(plan.to_remove) == ["feature/gone"]

    def test_selectors_combine_with_or(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(names=("scratch",), gone=True, merged=True), allow_unpushed=True)
        assert names(plan.to_remove) == ["feature/done", "feature/gone", "release/1.0", "scratch"]

    def test_all_never_selects_main_worktree(self, engine):
        main = candidate("checkout", branch="trunk", is_main=True)
        plan = engine.plan([main, candidate("feature")], PruneSelector(all=True))
        assert names(plan.to_remove) == ["feature"]
        assert plan.skipped_protected == []

    def test_main_worktree_named_explicitly_is_protected(self, engine):
        main = candidate("checkout", branch="trunk", is_main=True)
        plan = engine.plan([main], PruneSelector(names=("checkout",)))
        assert plan.to_remove == []
        assert plan.skipped_protected[0].rule == RULE_MAIN_WORKTREE

    def test_unmatched_names_reported(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(names=("nope", "feature/done")))
        assert plan.unmatched_names == ["nope"]
        assert names(plan.to_remove) == ["feature/done"]

    def test_empty_selector_picks_deleted_branches(self, engine, candidates):
        deleted = candidate("feature/deleted", status=make_status(branch_deleted=True))
        plan = engine.plan(candidates + [deleted], PruneSelector())
        assert names(plan.to_remove) == ["feature/deleted"]
        assert plan.skipped_protected == []
        assert plan.skipped_unsafe == []

    def test_empty_selector_ignores_gone_upstream(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(), allow_unpushed=True)
        assert plan.selected_paths == []

    def test_describe(self):
        assert PruneSelector().describe() == "deleted branches"
        assert PruneSelector(merged=True, merged_into="develop").describe() == "--merged develop"

    def test_unknown_status_not_selected_by_bulk_selectors(self, engine):
        broken = PruneCandidate(make_worktree("broken"), None, "git exploded")
        plan = engine.plan([broken], PruneSelector(merged=True, gone=True))
        assert plan.selected_paths == []


class TestGates:
    def test_protected_pattern(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(merged=True), protected_patterns=["release/*"])
        assert names(plan.to_remove) == ["feature/done"]
        assert [(p.worktree.name, p.rule) for p in plan.skipped_protected] == [("release/1.0", "release/*")]

    def test_protection_wins_over_safety(self, engine):
        dirty = candidate("develop", status=make_status(dirty=True, unpushed=True))
        plan = engine.plan([dirty], PruneSelector(all=True), protected_patterns=["develop"])
        assert plan.skipped_unsafe == []
        assert plan.skipped_protected[0].rule == "develop"

    def test_default_branch_is_implicitly_protected(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(names=("main",)), default_branch="main")
        assert plan.to_remove == []
        assert plan.skipped_protected[0].rule == RULE_DEFAULT_BRANCH

    def test_detached_worktree_is_not_pattern_protected(self, engine):
        plan = engine.plan([candidate("scratch", branch="")], PruneSelector(all=True), protected_patterns=["*"])
        assert names(plan.to_remove) == ["scratch"]

    def test_unsafe_reasons(self, engine):
        cands = [
            candidate("a", status=make_status(dirty=True)),
            candidate("b", status=make_status(unpushed=True)),
            candidate("c", status=make_status(dirty=True, unpushed=True)),
        ]
        plan = engine.plan(cands, PruneSelector(all=True))
        assert [u.reasons for u in plan.skipped_unsafe] == [
            (UnsafeReason.DIRTY,),
            (UnsafeReason.UNPUSHED,),
            (UnsafeReason.DIRTY, UnsafeReason.UNPUSHED),
        ]
        assert plan.skipped_unsafe[2].reason_text == "dirty and unpushed"

    def test_allow_flags(self, engine):
        cands = [candidate("a", status=make_status(dirty=True)), candidate("b", status=make_status(unpushed=True))]
        assert names(engine.plan(cands, PruneSelector(all=True), allow_dirty=True).to_remove) == ["a"]
        assert names(engine.plan(cands, PruneSelector(all=True), allow_unpushed=True).to_remove) == ["b"]
        plan = engine.plan(cands, PruneSelector(all=True), allow_dirty=True, allow_unpushed=True)
        assert names(plan.to_remove) == ["a", "b"]

    def test_unknown_status_is_always_unsafe(self, engine):
        broken = PruneCandidate(make_worktree("broken"), None, "git exploded")
        plan = engine.plan([broken], PruneSelector(names=("broken",)), allow_dirty=True, allow_unpushed=True)
        assert plan.to_remove == []
        assert plan.skipped_unsafe[0].reasons == (UnsafeReason.STATUS_UNKNOWN,)
        assert "git exploded" in plan.skipped_unsafe[0].reason_text


    def test_locked_worktree_is_unsafe(self, engine):
        locked = candidate("feature/locked", is_locked=True)
        plan = engine.plan(
            [locked, candidate("feature/free")], PruneSelector(all=True), allow_dirty=True, allow_unpushed=True
        )
        assert names(plan.to_remove) == ["feature/free"]
        assert plan.skipped_unsafe[0].reasons == (UnsafeReason.LOCKED,)
        assert "unlock" in plan.skipped_unsafe[0].reason_text

    def test_protection_wins_over_lock(self, engine):
        locked = candidate("release/1.0", is_locked=True)
        plan = engine.plan([locked], PruneSelector(all=True), protected_patterns=["release/*"])
        assert plan.skipped_unsafe == []
        assert plan.skipped_protected[0].rule == "release/*"


class TestPlanProperties:
    @pytest.mark.parametrize("selector", [
        PruneSelector(all=True),
        PruneSelector(merged=True),
        PruneSelector(gone=True, merged=True),
        PruneSelector(names=("main", "feature/wip", "scratch")),
    ])
    def test_partitions_disjoint_and_cover_selection(self, engine, candidates, selector):
        plan = engine.plan(candidates, selector, protected_patterns=["release/*"], default_branch="main")
        removed = [wt.path for wt in plan.to_remove]
        protected = [p.worktree.path for p in plan.skipped_protected]
        unsafe = [u.worktree.path for u in plan.skipped_unsafe]

        assert not set(removed) & set(protected)
        assert not set(removed) & set(unsafe)
        assert not set(protected) & set(unsafe)

        selected = [
            c.worktree.path for c in candidates
            if any(c.worktree.matches(n) for n in selector.names)
            or (not c.worktree.is_main and (
                selector.all
                or (selector.gone and c.status.is_gone)
                or (selector.merged and c.status.is_merged)
            ))
        ]
        assert sorted(plan.selected_paths) == sorted(selected)

    def test_plan_order_follows_enumeration(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(all=True), allow_dirty=True, allow_unpushed=True)
        order = [c.worktree.name for c in candidates]
        removed = names(plan.to_remove)
        assert removed == sorted(removed, key=order.index)

    def test_dry_run_is_idempotent(self, engine, candidates):
        selector = PruneSelector(merged=True, gone=True)
        first = engine.plan(candidates, selector, dry_run=True, default_branch="main")
        second = engine.plan(candidates, selector, dry_run=True, default_branch="main")
        assert first == second
        assert first.is_dry_run


class TestExecute:
    def test_removes_in_order(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(merged=True))
        service = Mock()
        outcomes = engine.execute(plan, service)
        assert [c.args[0] for c in service.remove_worktree.call_args_list] == ["/work/feature/done", "/work/release/1.0"]
        assert all(o.removed for o in outcomes)

    def test_failure_is_recorded_and_rest_continue(self, engine):
        cands = [candidate("a"), candidate("b"), candidate("c")]
        plan = engine.plan(cands, PruneSelector(all=True), allow_unpushed=True)
        service = Mock()
        service.remove_worktree.side_effect = [None, GitBackendError("worktree remove", "/work/b", "locked"), None]

        outcomes = engine.execute(plan, service)

        assert [(o.worktree.name, o.removed) for o in outcomes] == [("a", True), ("b", False), ("c", True)]
        assert "locked" in outcomes[1].error

    def test_dry_run_plan_is_never_executed(self, engine, candidates):
        plan = engine.plan(candidates, PruneSelector(all=True), allow_dirty=True, allow_unpushed=True, dry_run=True)
        service = Mock()
        assert engine.execute(plan, service) == []
        service.remove_worktree.assert_not_called()
        assert plan.to_remove
