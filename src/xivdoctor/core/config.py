# src/xivdoctor/core/config.py
"""
Файл с резервной (fallback) конфигурацией для модулей ядра.

Каталог сообщений используется только в том случае, если в папке данных
нет файла `messages.yaml` или в нем отсутствует нужный ключ. Локализованные
тексты всегда приходят извне, ядро лишь выбирает ключ.
"""

# ===================================================================
# Ключи хранилища флагов
# ===================================================================
FLAG_COMPLAINED_ABOUT_ADMIN = "hasComplainedAboutAdmin"
FLAG_COMPLAINED_ABOUT_SHIM_DXGI = "hasComplainedAboutShimDxgi"
FLAG_COMPLAINED_ABOUT_SHIM_OUT_OF_DATE = "hasComplainedAboutShimOutOfDate"
FLAG_COMPLAINED_ABOUT_WRITE_ACCESS = "hasComplainedAboutMyGamesWriteAccess"
KEY_LAST_SHIM_VERSION_CHECK = "lastShimVersionCheckTimestamp"
KEY_GAME_PATH = "gamePath"


# ===================================================================
# Резервная конфигурация для проверок
# ===================================================================
DEFAULT_CHECK_CONFIG = {
    # Ветка реестра (HKCU) с принудительными режимами совместимости.
    "compat_flags_path": r"Software\Microsoft\Windows NT\CurrentVersion\AppCompatFlags\Layers",
    # Подстроки имен записей, которые относятся к игре или лаунчеру.
    "compat_entry_markers": ["ffxiv_dx11", "XIVLauncher"],
    "compat_runas_flag": "RUNASADMIN",

    # Системные "инжекторы", с которыми игра не запускается.
    "incompatible_modules": ["MacType.dll", "MacType64.dll"],

    # Имя папки с пользовательскими данными игры в "Documents\My Games".
    "game_data_folder_name": "FINAL FANTASY XIV - A Realm Reborn",

    # Файлы шейдерной надстройки в папке "game".
    "shim_file_names": {
        "d3d11": "d3d11.dll",
        "dxgi": "dxgi.dll",
        "dinput8": "dinput8.dll",
    },
    "shim_product_name": "GShade",
    "shim_registry_path": r"SOFTWARE\GShade",
    "shim_installations_path": r"SOFTWARE\GShade\Installations",
    "shim_installation_marker": "ffxiv_dx11.exe",
    "shim_version_value": "instver",
    "shim_altdx_value": "altdxmode",
    "shim_updater_path": r"%ProgramFiles%\GShade\GShade Control Panel.exe",
    "shim_updater_args": "/U",

    # Удаленный источник версий и период охлаждения.
    "shim_tags_url": "https://api.github.com/repos/mortalitas/gshade/tags",
    "version_tag_prefix": "v",
    "version_check_cooldown_minutes": 30,
    "http_timeout": 15,
}


# ===================================================================
# Резервный каталог сообщений
# ===================================================================
DEFAULT_MESSAGES = {
    "title": "XIVLauncher",
    "problem_title": "XIVLauncher Problem",
    "AdminCheck": (
        "XIVLauncher and/or the game are set to run as administrator.\n"
        "This can cause various issues, including addons failing to launch and "
        "hotkey applications failing to respond.\n\n"
        "Do you want to fix this issue automatically?"
    ),
    "AdminCheckNag": (
        "XIVLauncher is running as administrator.\n"
        "This can cause various issues, including addons failing to launch and "
        "hotkey applications failing to respond.\n\n"
        "Please take care to avoid running XIVLauncher as admin."
    ),
    "MacTypeNag": (
        "MacType was detected on this PC.\n"
        "It will cause problems with the game; both on the official launcher and XIVLauncher.\n\n"
        "Please exclude XIVLauncher, ffxivboot, ffxivlauncher, ffxivupdater and ffxiv_dx11 from MacType."
    ),
    "MyGamesWriteAccessNag": (
        "You do not have permission to write to the game's My Games folder.\n"
        "This will prevent screenshots and some character data from being saved.\n\n"
        "This may be caused by either your antivirus or a permissions error. "
        "Please check your My Games folder permissions."
    ),
    "ShimSymlinks": (
        "GShade symbolic links are corrupted.\n\n"
        "The game cannot start. Do you want XIVLauncher to fix this? You will need to reinstall GShade."
    ),
    "ShimDuplicate": (
        "A broken GShade installation was detected.\n\n"
        "The game cannot start. Do you want XIVLauncher to fix this? You will need to reinstall GShade."
    ),
    "ShimWrongMode": (
        "You installed GShade in a mode that isn't optimal for use together with XIVLauncher. "
        "Do you want XIVLauncher to fix this for you?\n\n"
        "This will not change your presets or settings, it will merely improve compatibility "
        "with XIVLauncher features."
    ),
    "ShimOutOfDate": (
        "Your copy of GShade is out of date. This will result in it being disabled if you "
        "proceed to launch anyways, per GShade policies.\n\n"
        "Would you like to run the GShade updater before launching FFXIV? "
        "This will exit XIVLauncher in order to continue."
    ),
}
