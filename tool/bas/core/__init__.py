# コアモジュール
# 比較評価、アクション実行エンジン、セッション管理、レポート生成を提供
