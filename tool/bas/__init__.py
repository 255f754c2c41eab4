"""
bas — ブラウザアクションスクリプト実行・記録ツール

JSON で記述したアクション列を Selenium / Playwright のいずれかで実行し、
ページ内での操作記録からアクションスクリプトを生成する。
"""

__version__ = "0.1.0"
