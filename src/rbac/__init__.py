"""프로젝트 단위 역할 기반 접근 제어(RBAC).

하위 모듈을 직접 임포트해서 사용합니다. (예: ``from src.rbac.guard import AccessGuard``)
ORM 모델이 ``src.rbac.roles``를 참조하므로 이 패키지에서는 아무것도 미리 임포트하지 않습니다.
"""
