"""
Exceções de negócio da editora.

Localização: editora_app/exceptions.py

Os services levantam estas exceções; as views (decorator api_json) convertem
cada uma em resposta JSON com o status_code correspondente.
"""


class ErroEditora(Exception):
    """Base de todos os erros tratados na fronteira da API."""

    status_code = 500

    def __init__(self, mensagem: str = ""):
        super().__init__(mensagem or self.__doc__ or self.__class__.__name__)
        self.mensagem = str(self)


class ErroValidacao(ErroEditora, ValueError):
    """Dados obrigatórios ausentes ou fora do intervalo permitido."""

    status_code = 400


class ErroRegraNegocio(ErroEditora, ValueError):
    """Operação viola uma regra de negócio."""

    status_code = 400


class NaoEncontradoError(ErroEditora, LookupError):
    """Registro não encontrado."""

    status_code = 404


class ErroIntegridade(ErroEditora):
    """Falha parcial ao gravar comissão/vendas; a operação foi desfeita."""

    status_code = 500


# Comissões

class AutorNaoEncontradoError(NaoEncontradoError):
    """Autor não encontrado"""


class AutorSemLivrosError(NaoEncontradoError):
    """Nenhum livro encontrado para este autor"""


class SemVendasNoPeriodoError(NaoEncontradoError):
    """Nenhuma venda encontrada para o período selecionado"""


class SemVendasPendentesError(SemVendasNoPeriodoError):
    """Nenhuma venda pendente para o período selecionado ou todas as vendas já foram processadas para este autor"""


class ComissaoNaoEncontradaError(NaoEncontradoError):
    """Comissão não encontrada"""


class ComissaoJaPagaError(ErroRegraNegocio):
    """Esta comissão já foi paga"""


# Catálogo e vendas

class LivroNaoEncontradoError(NaoEncontradoError):
    """Livro não encontrado"""


class VendaNaoEncontradaError(NaoEncontradoError):
    """Venda não encontrada"""


class ClienteNaoEncontradoError(NaoEncontradoError):
    """Cliente não encontrado"""


class VendaProcessadaError(ErroRegraNegocio):
    """Venda já vinculada a uma comissão; exclua a comissão antes de alterá-la"""
