"""
hotel_manage — 酒店管理系统授权核心
租户（Customer）、凭证（User）、角色/权限图与授权判定
"""

__version__ = "0.1.0"
