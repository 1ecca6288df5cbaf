"""Cristos Gateway -- 对话式项目组装 HTTP 服务"""
