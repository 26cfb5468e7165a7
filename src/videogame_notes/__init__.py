"""IGDB のゲーム情報からノート用テンプレート変数を生成するツール。"""

__version__ = "0.1.0"
