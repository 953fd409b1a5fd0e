"""
Internationalization

Static message table for the four UI languages (ko, en, zh, ja) plus the
request-language detection used by the HTTP middleware.

Lookups fall back to Korean and then to the key itself, so a missing
translation never breaks a response.
"""

from typing import Dict, Optional

SUPPORTED_LANGUAGES = ("ko", "en", "zh", "ja")
DEFAULT_LANGUAGE = "ko"

_PLATFORM_NAMES = {
    "twitter": "X (Twitter)",
    "instagram": "Instagram",
    "tiktok": "TikTok",
    "linkedin": "LinkedIn",
    "facebook": "Facebook",
    "youtube": "YouTube",
    "threads": "Threads",
    "reddit": "Reddit",
    "pinterest": "Pinterest",
    "bluesky": "Bluesky",
    "telegram": "Telegram",
    "snapchat": "Snapchat",
    "googlebusiness": "Google Business",
}

PLATFORM_NAMES: Dict[str, Dict[str, str]] = {
    "ko": dict(_PLATFORM_NAMES),
    "en": dict(_PLATFORM_NAMES),
    "zh": {
        **_PLATFORM_NAMES,
        "twitter": "X (推特)",
        "tiktok": "TikTok (抖音国际版)",
        "linkedin": "领英",
        "facebook": "脸书",
        "googlebusiness": "Google 商家",
    },
    "ja": {**_PLATFORM_NAMES, "googlebusiness": "Googleビジネス"},
}

MESSAGES: Dict[str, Dict[str, str]] = {
    "ko": {
        # common
        "error_server": "서버 내부 오류가 발생했습니다.",
        "error_unauthorized": "인증이 필요합니다.",
        "error_forbidden": "접근 권한이 없습니다.",
        "error_not_found": "요청한 리소스를 찾을 수 없습니다.",
        "error_validation": "요청 형식이 올바르지 않습니다.",
        # auth
        "auth_signup_success": "회원가입이 완료되었습니다.",
        "auth_login_success": "로그인 성공",
        "auth_email_exists": "이미 사용 중인 이메일입니다.",
        "auth_username_exists": "이미 사용 중인 사용자명입니다.",
        "auth_invalid_credentials": "이메일 또는 비밀번호가 올바르지 않습니다.",
        "auth_fields_required": "이메일, 비밀번호, 사용자명을 입력해주세요.",
        "auth_code_sent": "인증 코드가 이메일로 발송되었습니다.",
        "auth_code_resent": "인증 코드가 다시 발송되었습니다.",
        "auth_code_invalid": "인증 코드가 올바르지 않거나 만료되었습니다.",
        "auth_no_pending_signup": "진행 중인 회원가입이 없습니다.",
        "auth_email_not_verified": "이메일 인증이 필요합니다.",
        "auth_oauth_only": "이 계정은 {provider}(으)로 가입되었습니다. {provider} 로그인을 사용하세요.",
        "auth_user_not_found": "등록되지 않은 이메일입니다.",
        "auth_reset_code_sent": "비밀번호 재설정 코드가 발송되었습니다.",
        "auth_password_too_short": "비밀번호는 4자 이상이어야 합니다.",
        "auth_password_reset": "비밀번호가 변경되었습니다.",
        "auth_logged_out": "로그아웃되었습니다.",
        "auth_language_invalid": "지원하지 않는 언어입니다.",
        "auth_language_updated": "언어가 변경되었습니다.",
        # posts
        "post_created": "게시되었습니다.",
        "post_scheduled": "예약되었습니다.",
        "post_updated": "예약 게시물이 수정되었습니다.",
        "post_deleted": "삭제되었습니다.",
        "post_not_found": "게시물을 찾을 수 없습니다.",
        "post_content_required": "내용과 플랫폼을 지정해주세요.",
        "post_error": "게시 중 오류가 발생했습니다.",
        "post_no_accounts": "연결된 계정이 없습니다. 먼저 계정을 동기화해주세요.",
        "post_only_scheduled": "예약된 게시물만 수정할 수 있습니다.",
        # social accounts
        "social_synced": "계정이 동기화되었습니다.",
        "social_sync_error": "계정 동기화 중 오류가 발생했습니다.",
        "social_disconnected": "연결이 해제되었습니다.",
        "social_reconnected": "계정이 다시 연결되었습니다.",
        "social_not_found": "계정을 찾을 수 없습니다.",
        "social_connect_url": "아래 URL에서 계정을 연결하세요.",
        "social_no_profile": "Late 프로필이 없습니다. Late 대시보드에서 프로필을 먼저 만드세요.",
        "social_platform_invalid": "지원하지 않는 플랫폼입니다.",
        "social_late_unconfigured": "LATE_API_KEY가 설정되지 않았습니다.",
        # ai
        "ai_topic_required": "주제를 입력해주세요.",
        "ai_error": "AI 추천 생성 중 오류가 발생했습니다.",
        "ai_translate_fields_required": "content, fromLang, toLangs를 입력해주세요.",
        "ai_translate_unconfigured": "번역 기능을 사용하려면 DEEPL_API_KEY가 필요합니다.",
        # subscription
        "sub_plan_invalid": "유효한 유료 플랜을 선택해주세요.",
        "sub_billing_required": "결제 수단을 먼저 등록해주세요.",
        "sub_started": "구독이 시작되었습니다!",
        "sub_cancelled": "구독이 취소되었습니다.",
        "sub_no_active": "활성 구독이 없습니다.",
        "sub_until": "까지 현재 플랜을 이용할 수 있습니다.",
        "sub_billing_registered": "결제 수단이 등록되었습니다.",
        "sub_payment_failed": "결제에 실패했습니다.",
        # usage
        "usage_limit_reached": "이번 달 사용 한도에 도달했습니다.",
        "usage_upgrade": "플랜을 업그레이드해주세요.",
        "usage_schedule_upgrade": "예약 게시는 Basic 이상 플랜에서 사용 가능합니다.",
        # uploads
        "upload_no_files": "업로드할 파일이 없습니다.",
        "upload_too_many": "한 번에 최대 {max_files}개 파일까지 업로드할 수 있습니다.",
        "upload_too_large": "파일 크기는 {max_mb}MB를 넘을 수 없습니다.",
        "upload_invalid_type": "지원하지 않는 파일 형식입니다.",
    },
    "en": {
        "error_server": "An internal server error occurred.",
        "error_unauthorized": "Authentication required.",
        "error_forbidden": "Access denied.",
        "error_not_found": "The requested resource was not found.",
        "error_validation": "The request is malformed.",
        "auth_signup_success": "Account created successfully.",
        "auth_login_success": "Login successful.",
        "auth_email_exists": "This email is already in use.",
        "auth_username_exists": "This username is already taken.",
        "auth_invalid_credentials": "Invalid email or password.",
        "auth_fields_required": "Please enter email, password, and username.",
        "auth_code_sent": "Verification code sent to your email.",
        "auth_code_resent": "Verification code resent.",
        "auth_code_invalid": "Invalid or expired verification code.",
        "auth_no_pending_signup": "No pending signup for this email.",
        "auth_email_not_verified": "Email verification required.",
        "auth_oauth_only": "This account was created with {provider}. Please use {provider} login.",
        "auth_user_not_found": "No account is registered with this email.",
        "auth_reset_code_sent": "Password reset code sent.",
        "auth_password_too_short": "Password must be at least 4 characters.",
        "auth_password_reset": "Password has been changed.",
        "auth_logged_out": "Logged out.",
        "auth_language_invalid": "Unsupported language.",
        "auth_language_updated": "Language updated.",
        "post_created": "Post published.",
        "post_scheduled": "Post scheduled.",
        "post_updated": "Scheduled post updated.",
        "post_deleted": "Post deleted.",
        "post_not_found": "Post not found.",
        "post_content_required": "Content and platforms are required.",
        "post_error": "An error occurred while posting.",
        "post_no_accounts": "No connected accounts found. Please sync your accounts first.",
        "post_only_scheduled": "Only scheduled posts can be edited.",
        "social_synced": "Accounts synced.",
        "social_sync_error": "Error syncing accounts.",
        "social_disconnected": "Account disconnected.",
        "social_reconnected": "Account reconnected.",
        "social_not_found": "Account not found.",
        "social_connect_url": "Connect your account at the URL below.",
        "social_no_profile": "No Late profile found. Create a profile in the Late dashboard first.",
        "social_platform_invalid": "Unsupported platform.",
        "social_late_unconfigured": "LATE_API_KEY is not configured.",
        "ai_topic_required": "Please enter a topic.",
        "ai_error": "Error generating AI suggestions.",
        "ai_translate_fields_required": "content, fromLang, toLangs required.",
        "ai_translate_unconfigured": "DEEPL_API_KEY required for translation.",
        "sub_plan_invalid": "Please select a valid paid plan.",
        "sub_billing_required": "Please register a payment method first.",
        "sub_started": "Subscription started!",
        "sub_cancelled": "Subscription cancelled.",
        "sub_no_active": "No active subscription.",
        "sub_until": "You can use the current plan until",
        "sub_billing_registered": "Payment method registered.",
        "sub_payment_failed": "Payment failed.",
        "usage_limit_reached": "Monthly usage limit reached.",
        "usage_upgrade": "Please upgrade your plan.",
        "usage_schedule_upgrade": "Scheduled posting requires Basic plan or above.",
        "upload_no_files": "No files to upload.",
        "upload_too_many": "You can upload at most {max_files} files at once.",
        "upload_too_large": "Files cannot be larger than {max_mb}MB.",
        "upload_invalid_type": "Unsupported file type.",
    },
    "zh": {
        "error_server": "服务器内部错误。",
        "error_unauthorized": "需要认证。",
        "error_forbidden": "无访问权限。",
        "error_not_found": "未找到请求的资源。",
        "error_validation": "请求格式不正确。",
        "auth_signup_success": "注册成功。",
        "auth_login_success": "登录成功。",
        "auth_email_exists": "该邮箱已被使用。",
        "auth_username_exists": "该用户名已被使用。",
        "auth_invalid_credentials": "邮箱或密码不正确。",
        "auth_fields_required": "请输入邮箱、密码和用户名。",
        "auth_code_sent": "验证码已发送到您的邮箱。",
        "auth_code_resent": "验证码已重新发送。",
        "auth_code_invalid": "验证码无效或已过期。",
        "auth_no_pending_signup": "该邮箱没有待完成的注册。",
        "auth_email_not_verified": "需要验证邮箱。",
        "auth_oauth_only": "该账户通过 {provider} 注册。请使用 {provider} 登录。",
        "auth_user_not_found": "该邮箱未注册。",
        "auth_reset_code_sent": "密码重置验证码已发送。",
        "auth_password_too_short": "密码至少需要4个字符。",
        "auth_password_reset": "密码已更改。",
        "auth_logged_out": "已退出登录。",
        "auth_language_invalid": "不支持的语言。",
        "auth_language_updated": "语言已更改。",
        "post_created": "发布成功。",
        "post_scheduled": "已预约发布。",
        "post_updated": "预约帖子已更新。",
        "post_deleted": "已删除。",
        "post_not_found": "未找到帖子。",
        "post_content_required": "请输入内容并选择平台。",
        "post_error": "发布时发生错误。",
        "post_no_accounts": "没有已连接的账户。请先同步账户。",
        "post_only_scheduled": "只能修改已预约的帖子。",
        "social_synced": "账户已同步。",
        "social_sync_error": "同步账户时发生错误。",
        "social_disconnected": "已断开连接。",
        "social_reconnected": "账户已重新连接。",
        "social_not_found": "未找到账户。",
        "social_connect_url": "请通过以下链接连接账户。",
        "social_no_profile": "没有 Late 配置文件。请先在 Late 控制台创建。",
        "social_platform_invalid": "不支持的平台。",
        "social_late_unconfigured": "未配置 LATE_API_KEY。",
        "ai_topic_required": "请输入主题。",
        "ai_error": "生成AI推荐时发生错误。",
        "ai_translate_fields_required": "请提供 content、fromLang 和 toLangs。",
        "ai_translate_unconfigured": "翻译功能需要 DEEPL_API_KEY。",
        "sub_plan_invalid": "请选择有效的付费方案。",
        "sub_billing_required": "请先注册支付方式。",
        "sub_started": "订阅已开始！",
        "sub_cancelled": "订阅已取消。",
        "sub_no_active": "没有活跃的订阅。",
        "sub_until": "可以使用当前方案直到",
        "sub_billing_registered": "支付方式已注册。",
        "sub_payment_failed": "支付失败。",
        "usage_limit_reached": "本月使用限额已达到。",
        "usage_upgrade": "请升级您的方案。",
        "usage_schedule_upgrade": "预约发布需要Basic以上方案。",
        "upload_no_files": "没有要上传的文件。",
        "upload_too_many": "一次最多上传 {max_files} 个文件。",
        "upload_too_large": "文件不能超过 {max_mb}MB。",
        "upload_invalid_type": "不支持的文件类型。",
    },
    "ja": {
        "error_server": "サーバー内部エラーが発生しました。",
        "error_unauthorized": "認証が必要です。",
        "error_forbidden": "アクセス権限がありません。",
        "error_not_found": "リソースが見つかりません。",
        "error_validation": "リクエストの形式が正しくありません。",
        "auth_signup_success": "会員登録が完了しました。",
        "auth_login_success": "ログイン成功。",
        "auth_email_exists": "このメールアドレスは既に使用されています。",
        "auth_username_exists": "このユーザー名は既に使用されています。",
        "auth_invalid_credentials": "メールアドレスまたはパスワードが正しくありません。",
        "auth_fields_required": "メール、パスワード、ユーザー名を入力してください。",
        "auth_code_sent": "認証コードがメールに送信されました。",
        "auth_code_resent": "認証コードを再送信しました。",
        "auth_code_invalid": "認証コードが無効または期限切れです。",
        "auth_no_pending_signup": "このメールアドレスの保留中の登録はありません。",
        "auth_email_not_verified": "メール認証が必要です。",
        "auth_oauth_only": "このアカウントは{provider}で登録されています。{provider}ログインを使用してください。",
        "auth_user_not_found": "登録されていないメールアドレスです。",
        "auth_reset_code_sent": "パスワード再設定コードを送信しました。",
        "auth_password_too_short": "パスワードは4文字以上にしてください。",
        "auth_password_reset": "パスワードが変更されました。",
        "auth_logged_out": "ログアウトしました。",
        "auth_language_invalid": "サポートされていない言語です。",
        "auth_language_updated": "言語が変更されました。",
        "post_created": "投稿されました。",
        "post_scheduled": "予約されました。",
        "post_updated": "予約投稿を更新しました。",
        "post_deleted": "削除されました。",
        "post_not_found": "投稿が見つかりません。",
        "post_content_required": "内容とプラットフォームを指定してください。",
        "post_error": "投稿中にエラーが発生しました。",
        "post_no_accounts": "接続されたアカウントがありません。先にアカウントを同期してください。",
        "post_only_scheduled": "予約投稿のみ編集できます。",
        "social_synced": "アカウントが同期されました。",
        "social_sync_error": "アカウント同期中にエラーが発生しました。",
        "social_disconnected": "接続が解除されました。",
        "social_reconnected": "アカウントを再接続しました。",
        "social_not_found": "アカウントが見つかりません。",
        "social_connect_url": "下記URLからアカウントを接続してください。",
        "social_no_profile": "Lateプロフィールがありません。先にLateダッシュボードで作成してください。",
        "social_platform_invalid": "サポートされていないプラットフォームです。",
        "social_late_unconfigured": "LATE_API_KEYが設定されていません。",
        "ai_topic_required": "トピックを入力してください。",
        "ai_error": "AI提案の生成中にエラーが発生しました。",
        "ai_translate_fields_required": "content、fromLang、toLangsを指定してください。",
        "ai_translate_unconfigured": "翻訳にはDEEPL_API_KEYが必要です。",
        "sub_plan_invalid": "有効な有料プランを選択してください。",
        "sub_billing_required": "先に支払い方法を登録してください。",
        "sub_started": "サブスクリプションが開始されました！",
        "sub_cancelled": "サブスクリプションがキャンセルされました。",
        "sub_no_active": "有効なサブスクリプションがありません。",
        "sub_until": "まで現在のプランをご利用いただけます。",
        "sub_billing_registered": "支払い方法が登録されました。",
        "sub_payment_failed": "決済に失敗しました。",
        "usage_limit_reached": "今月の使用上限に達しました。",
        "usage_upgrade": "プランをアップグレードしてください。",
        "usage_schedule_upgrade": "予約投稿はBasic以上のプランで利用可能です。",
        "upload_no_files": "アップロードするファイルがありません。",
        "upload_too_many": "一度にアップロードできるのは最大{max_files}ファイルです。",
        "upload_too_large": "ファイルサイズは{max_mb}MBを超えられません。",
        "upload_invalid_type": "サポートされていないファイル形式です。",
    },
}


def normalize_language(lang: Optional[str]) -> str:
    """Map any value to a supported language code."""
    if lang in SUPPORTED_LANGUAGES:
        return lang
    return DEFAULT_LANGUAGE


def t(lang: Optional[str], key: str, **params) -> str:
    """
    Translate a message key.

    Args:
        lang: Requested language code
        key: Message key
        **params: Values substituted into ``{placeholders}``

    Returns:
        The localized message, the Korean message, or the key itself
    """
    language = normalize_language(lang)
    message = MESSAGES[language].get(key) or MESSAGES[DEFAULT_LANGUAGE].get(key) or key
    if params:
        try:
            return message.format(**params)
        except (KeyError, IndexError):
            return message
    return message


def platform_name(lang: Optional[str], platform: str) -> str:
    return PLATFORM_NAMES[normalize_language(lang)].get(platform, platform)


def detect_language(
    query_lang: Optional[str],
    header_lang: Optional[str],
    accept_language: Optional[str],
) -> str:
    """
    Pick the response language for a request.

    Precedence is the ``lang`` query parameter, then ``X-Language``, then the
    first tag of ``Accept-Language``. Unsupported values become Korean.
    """
    candidate = query_lang or header_lang
    if not candidate and accept_language:
        candidate = accept_language.split(",")[0].split(";")[0].split("-")[0].strip().lower()
    return normalize_language(candidate)
