"""日期与字段校验单元测试"""

import pytest
from cristos.core.models import MemberRole, Priority, ProjectStatus
from cristos.core.validation import (
    is_valid_date,
    normalize_member_role,
    normalize_priority,
    normalize_project_status,
    split_assignees,
)


class TestIsValidDate:
    """严格 YYYY-MM-DD 校验"""

    @pytest.mark.parametrize("value", ["2024-12-31", "2025-01-01", "2024-02-29"])
    def test_valid_dates(self, value: str):
        assert is_valid_date(value) is True

    @pytest.mark.parametrize(
        "value",
        [
            "YYYY-MM-DD",
            "2024-MM-01",
            "2024-02-30",
            "2023-02-29",
            "2024-13-01",
            "2024/12/31",
            "24-12-31",
            "2024-1-5",
            " 2024-12-31",
            "2024-12-31T00:00",
            "",
            None,
            20241231,
        ],
    )
    def test_invalid_dates(self, value):
        """占位符、不存在的日期、非规范格式一律拒绝"""
        assert is_valid_date(value) is False


class TestNormalizers:
    """枚举归一化"""

    def test_priority(self):
        assert normalize_priority("High") is Priority.HIGH
        assert normalize_priority(" urgent ") is Priority.URGENT
        assert normalize_priority("critical") is None
        assert normalize_priority(None) is None

    def test_project_status(self):
        assert normalize_project_status("On Hold") is ProjectStatus.ON_HOLD
        assert normalize_project_status("on-hold") is ProjectStatus.ON_HOLD
        assert normalize_project_status("planning") is ProjectStatus.PLANNING
        assert normalize_project_status("someday") is None

    def test_member_role_defaults_to_viewer(self):
        """缺失或无法识别的角色降为 viewer"""
        assert normalize_member_role(None) is MemberRole.VIEWER
        assert normalize_member_role("") is MemberRole.VIEWER
        assert normalize_member_role("overlord") is MemberRole.VIEWER

    def test_member_role_aliases(self):
        assert normalize_member_role("Sponsor") is MemberRole.SPONSOR
        assert normalize_member_role("Team member") is MemberRole.MEMBER
        assert normalize_member_role("team") is MemberRole.MEMBER
        assert normalize_member_role("LEAD") is MemberRole.LEAD

    def test_split_assignees(self):
        assert split_assignees("alice, bob,,carol ") == ["alice", "bob", "carol"]
        assert split_assignees(None) == []
        assert split_assignees(True) == []
