"""RU: Построители команд для стадий плана (видео, рендер, аудио).

Каждый модуль возвращает готовые `Invocation`; соединение процессов
описывает `CommandPlan`, а запускает их `playvideo.pipeline`.

EN: Command builders for plan stages (video, render, audio).

Each module returns ready `Invocation` objects; `CommandPlan` describes how
they are wired and `playvideo.pipeline` runs them.
"""
