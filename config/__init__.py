"""
Config 패키지

설정 관리를 위한 포트/어댑터 패턴 구현
- 포트: Core의 ConfigPort
- 어댑터: pydantic-settings 기반 설정 클래스
- Factory: ENVIRONMENT 값에 따른 설정 클래스 선택
"""
