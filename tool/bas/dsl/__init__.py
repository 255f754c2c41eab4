# DSL モジュール
# アクションスキーマ定義、スクリプトパーサー、Linter を提供

from . import schema  # noqa: F401
from . import parser  # noqa: F401
from . import linter  # noqa: F401
