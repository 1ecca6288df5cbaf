"""Cristos Core -- 项目组装引擎的领域模型、解析器与持久化层"""
