"""BBQ 核心模块"""
