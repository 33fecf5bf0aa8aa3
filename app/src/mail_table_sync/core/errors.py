"""同期処理で扱う例外の階層。

致命的なもの (`FatalSyncError`) は実行全体を中断して呼び出し元へそのまま返す。
それ以外はレコード単位・添付単位に閉じ込められ、`WriteOutcome` に集計される。
"""

from __future__ import annotations


class SyncError(RuntimeError):
    """同期パイプラインの基底例外。"""

    code = "SYNC_ERROR"


class FatalSyncError(SyncError):
    """実行を中断させる例外。"""


class SchemaError(FatalSyncError):
    """フィールドの取得・作成に失敗した。"""

    code = "SCHEMA_ERROR"


class MappingEmptyError(FatalSyncError):
    """利用可能なフィールドが 1 つも見つからない。"""

    code = "MAPPING_EMPTY"

    def __init__(self) -> None:
        super().__init__("利用可能なフィールドが見つかりません。フィールド設定を確認してください。")


class RecordValidationError(SyncError):
    """1 件のレコードのデータが不正。"""

    code = "RECORD_INVALID"

    def __init__(self, index: int, field: str, reason: str) -> None:
        super().__init__(f"レコード {index} の {field}: {reason}")
        self.index = index
        self.field = field
        self.reason = reason


class AttachmentUploadError(SyncError):
    code = "ATTACHMENT_UPLOAD_FAILED"

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"添付ファイル {filename} のアップロードに失敗しました: {reason}")
        self.filename = filename


class BulkWriteError(SyncError):
    """一括登録の失敗。1 件ずつの登録へ切り替える合図になる。"""

    code = "BULK_WRITE_FAILED"


class RowInsertError(SyncError):
    code = "ROW_INSERT_FAILED"

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"レコード {index} の登録に失敗しました: {reason}")
        self.index = index


class AttachmentAttachError(SyncError):
    code = "ATTACHMENT_ATTACH_FAILED"

    def __init__(self, record_id: str, reason: str) -> None:
        super().__init__(f"レコード {record_id} への添付設定に失敗しました: {reason}")
        self.record_id = record_id
