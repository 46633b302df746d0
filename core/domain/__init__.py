"""
Domain 패키지

도메인 엔티티, 예외, 비즈니스 규칙을 정의합니다.
외부 의존성 없이 순수한 비즈니스 로직만 포함합니다.

주요 엔티티:
- MessageChannel: 동기화 대상 메일함
- ConnectedAccount: 채널이 사용하는 자격 증명
- MessageFolder: 채널의 메일 폴더와 델타 링크
- QueuedJob: 큐에 적재된 작업
"""
