"""ArtMarket 테스트 헬퍼."""
